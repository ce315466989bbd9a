"""DNS resolution with private-range policy.

Resolves an endpoint host to a single IP address. An answer inside one of the
private networks is a policy rejection and is terminal: retrying cannot
change it. Lookup errors and timeouts are retried by the DNS retry policy.
"""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import socket
from collections.abc import Awaitable, Callable, Sequence

from proxyprobe.config.probe_policy import DEFAULT_PRIVATE_NETWORKS
from proxyprobe.models.outcome import ProbeOutcome, StageResult
from proxyprobe.resilience.retry import RetryPolicy, Sleep

logger = logging.getLogger(__name__)

Lookup = Callable[[str], Awaitable[str]]
Network = ipaddress.IPv4Network | ipaddress.IPv6Network

_DEFAULT_NETWORKS: tuple[Network, ...] = tuple(
    ipaddress.ip_network(network) for network in DEFAULT_PRIVATE_NETWORKS
)


def is_private_ip(ip_str: str, networks: Sequence[Network] = _DEFAULT_NETWORKS) -> bool:
    """Check if an IP address is in one of *networks*."""
    try:
        addr = ipaddress.ip_address(ip_str)
    except ValueError:
        return True  # Invalid IP → reject
    if addr.version == 6 and addr.ipv4_mapped is not None:
        addr = addr.ipv4_mapped
    return any(addr.version == network.version and addr in network for network in networks)


async def getaddrinfo_lookup(host: str) -> str:
    """Resolve *host* through the running loop and return the first address."""
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(host, None, type=socket.SOCK_STREAM)
    if not infos:
        raise socket.gaierror(f"no address for {host}")
    return infos[0][4][0]


class DnsResolver:
    """Resolve hosts with a bounded, fixed-delay retry and the private-range policy.

    Args:
        retry: Attempt bound and delay; ``PRIVATE_ADDRESS`` is always terminal.
        timeout_seconds: Bound for a single lookup.
        networks: Address ranges rejected as private.
        lookup: Async ``host -> ip`` function (injectable for tests).
    """

    def __init__(
        self,
        retry: RetryPolicy,
        timeout_seconds: float,
        networks: Sequence[Network] = _DEFAULT_NETWORKS,
        lookup: Lookup = getaddrinfo_lookup,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._retry = RetryPolicy(
            max_attempts=retry.max_attempts,
            delay_seconds=retry.delay_seconds,
            terminal=retry.terminal | {ProbeOutcome.PRIVATE_ADDRESS},
        )
        self._timeout = timeout_seconds
        self._networks = tuple(networks)
        self._lookup = lookup
        self._sleep = sleep

    async def resolve(self, host: str) -> StageResult:
        """Resolve *host*; on success ``value`` is the IP string."""

        async def attempt(_: int) -> StageResult:
            return await self.resolve_once(host)

        return await self._retry.run("dns", host, attempt, sleep=self._sleep)

    async def resolve_once(self, host: str) -> StageResult:
        try:
            ip = await asyncio.wait_for(self._lookup(host), timeout=self._timeout)
        except asyncio.TimeoutError:
            return StageResult(ProbeOutcome.DNS_FAILURE, detail="lookup timed out")
        except (OSError, UnicodeError, ValueError) as exc:
            return StageResult(ProbeOutcome.DNS_FAILURE, detail=str(exc) or type(exc).__name__)

        if is_private_ip(ip, self._networks):
            return StageResult(ProbeOutcome.PRIVATE_ADDRESS, detail=f"private IP detected: {ip}", value=ip)

        logger.debug("DNS resolved: %s -> %s", host, ip)
        return StageResult(ProbeOutcome.PASS, value=ip)
