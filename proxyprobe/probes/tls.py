"""TLS / XTLS handshake probe.

Upgrades an already-open TCP connection to TLS using the endpoint's server
name. Certificate verification is disabled: the probe establishes that the
endpoint speaks TLS, not that it is trusted. The peer certificate's expiry is
read for diagnostics; a missing certificate is reported as ``unavailable``.
XTLS endpoints go through the same handshake and are only labelled apart.
"""

from __future__ import annotations

import asyncio
import logging
import ssl
from collections.abc import Awaitable, Callable

from cryptography import x509

from proxyprobe.models.endpoint import Endpoint, TlsMode
from proxyprobe.models.outcome import ProbeOutcome, StageResult
from proxyprobe.probes.tcp import Connection
from proxyprobe.resilience.retry import RetryPolicy, Sleep

logger = logging.getLogger(__name__)

CERT_UNAVAILABLE = "unavailable"

Reconnect = Callable[[], Awaitable[StageResult]]


def create_insecure_context() -> ssl.SSLContext:
    """Client context with hostname checks and chain verification turned off."""
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


def certificate_expiry(ssl_object: ssl.SSLObject | ssl.SSLSocket | None) -> str:
    """Return the peer certificate's notAfter as ISO-8601, or ``unavailable``.

    ``getpeercert()`` returns an empty dict when verification is off, so the
    DER form is decoded instead.
    """
    if ssl_object is None:
        return CERT_UNAVAILABLE
    der = ssl_object.getpeercert(binary_form=True)
    if not der:
        return CERT_UNAVAILABLE
    try:
        cert = x509.load_der_x509_certificate(der)
    except ValueError:
        return CERT_UNAVAILABLE
    return cert.not_valid_after_utc.isoformat()


class TlsProber:
    """Perform non-verifying TLS handshakes with SNI.

    Args:
        retry: Attempt bound and delay for ``tls-failure``.
        timeout_seconds: Bound for a single handshake.
    """

    def __init__(
        self,
        retry: RetryPolicy,
        timeout_seconds: float,
        context: ssl.SSLContext | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._retry = retry
        self._timeout = timeout_seconds
        self._context = context or create_insecure_context()
        self._sleep = sleep

    async def handshake(self, connection: Connection, endpoint: Endpoint) -> StageResult:
        """Single handshake on *connection*; on success ``value`` is the cert expiry."""
        try:
            await asyncio.wait_for(
                connection.writer.start_tls(self._context, server_hostname=endpoint.sni),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            return StageResult(ProbeOutcome.TLS_FAILURE, detail=f"handshake timed out after {self._timeout}s")
        except (ssl.SSLError, OSError, ValueError) as exc:
            # ValueError: unusable server_hostname
            return StageResult(ProbeOutcome.TLS_FAILURE, detail=str(exc) or type(exc).__name__)

        expiry = certificate_expiry(connection.writer.get_extra_info("ssl_object"))
        label = "XTLS" if endpoint.tls_mode is TlsMode.XTLS else "TLS"
        logger.info(
            "%s OK for %s - Expiry: %s",
            label,
            endpoint.address,
            expiry,
            extra={"stage": "tls", "endpoint": endpoint.address, "cert_expiry": expiry},
        )
        return StageResult(ProbeOutcome.PASS, value=expiry)

    async def secure(
        self,
        endpoint: Endpoint,
        connection: Connection,
        reconnect: Reconnect,
    ) -> StageResult:
        """Handshake with retries.

        The first attempt uses *connection*; later attempts obtain a fresh one
        from *reconnect*. A failed reconnect ends the stage with its TCP
        outcome. Every connection opened here is closed before returning.
        """

        async def attempt(number: int) -> StageResult:
            if number == 1:
                current = connection
            else:
                opened = await reconnect()
                if not opened.passed:
                    return opened
                current = opened.value
            try:
                return await self.handshake(current, endpoint)
            finally:
                if current is not connection:
                    await current.close()

        retry = RetryPolicy(
            max_attempts=self._retry.max_attempts,
            delay_seconds=self._retry.delay_seconds,
            terminal=self._retry.terminal | {ProbeOutcome.TCP_TIMEOUT},
        )
        stage = "xtls" if endpoint.tls_mode is TlsMode.XTLS else "tls"
        return await retry.run(stage, endpoint.address, attempt, sleep=self._sleep)
