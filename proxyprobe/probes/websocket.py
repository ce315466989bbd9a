"""WebSocket upgrade probe for endpoints with ``transport = websocket``.

Builds ``ws://`` or ``wss://host:port/path`` and performs the HTTP upgrade
with the endpoint's Host header. The blocking ``websocket-client`` handshake
runs on the prober's own thread pool, sized to the batch window so every
chain of a window gets a worker. The timeout is measured from the moment a
worker picks the handshake up. A timeout is reported as
``websocket-timeout``, anything else as ``websocket-failure``; both are
terminal.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import ssl
from collections.abc import Callable
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any

import websocket

from proxyprobe.models.endpoint import Endpoint
from proxyprobe.models.outcome import ProbeOutcome, StageResult
from proxyprobe.resilience.retry import RetryPolicy, Sleep

logger = logging.getLogger(__name__)

CreateConnection = Callable[..., Any]

_TERMINAL = frozenset({ProbeOutcome.WEBSOCKET_TIMEOUT, ProbeOutcome.WEBSOCKET_FAILURE})


def build_url(endpoint: Endpoint) -> str:
    """Return the upgrade URL for *endpoint*."""
    scheme = "wss" if endpoint.secured else "ws"
    host = f"[{endpoint.host}]" if ":" in endpoint.host else endpoint.host
    path = endpoint.path if endpoint.path.startswith("/") else f"/{endpoint.path}"
    return f"{scheme}://{host}:{endpoint.port}{path}"


def _mark_started(started: asyncio.Future) -> None:
    if not started.done():
        started.set_result(None)


class WebSocketProber:
    """Perform a WebSocket upgrade and close immediately on success.

    Args:
        retry: Attempt bound; timeout and failure outcomes are always terminal.
        timeout_seconds: Bound for the whole handshake.
        create_connection: ``websocket.create_connection`` compatible factory.
        max_workers: Size of the handshake thread pool (the batch window).
        executor: Pool to run handshakes on. When given, the caller owns it.
    """

    def __init__(
        self,
        retry: RetryPolicy,
        timeout_seconds: float,
        create_connection: CreateConnection = websocket.create_connection,
        sleep: Sleep = asyncio.sleep,
        *,
        max_workers: int = 20,
        executor: Executor | None = None,
    ) -> None:
        self._retry = RetryPolicy(
            max_attempts=retry.max_attempts,
            delay_seconds=retry.delay_seconds,
            terminal=retry.terminal | _TERMINAL,
        )
        self._timeout = timeout_seconds
        self._create_connection = create_connection
        self._sleep = sleep
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max(1, max_workers),
            thread_name_prefix="proxyprobe-ws",
        )

    async def probe(self, endpoint: Endpoint) -> StageResult:
        async def attempt(_: int) -> StageResult:
            return await self.probe_once(endpoint)

        return await self._retry.run("websocket", endpoint.address, attempt, sleep=self._sleep)

    async def probe_once(self, endpoint: Endpoint) -> StageResult:
        url = build_url(endpoint)
        loop = asyncio.get_running_loop()
        started = loop.create_future()
        handshake = functools.partial(self._handshake, url, endpoint, loop, started)
        upgrade = loop.run_in_executor(self._executor, handshake)
        upgrade.add_done_callback(lambda _: _mark_started(started))
        try:
            await started
            await asyncio.wait_for(upgrade, timeout=self._timeout)
        except (asyncio.TimeoutError, websocket.WebSocketTimeoutException):
            return StageResult(ProbeOutcome.WEBSOCKET_TIMEOUT, detail=f"upgrade timed out after {self._timeout}s")
        except (websocket.WebSocketException, ssl.SSLError, OSError, ValueError) as exc:
            return StageResult(ProbeOutcome.WEBSOCKET_FAILURE, detail=str(exc) or type(exc).__name__)

        logger.debug("WebSocket (%s) OK for %s", url.split(":", 1)[0].upper(), endpoint.address)
        return StageResult(ProbeOutcome.PASS)

    def close(self) -> None:
        """Release the handshake pool if this prober created it."""
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)

    def _handshake(
        self,
        url: str,
        endpoint: Endpoint,
        loop: asyncio.AbstractEventLoop,
        started: asyncio.Future,
    ) -> None:
        loop.call_soon_threadsafe(_mark_started, started)
        ws = self._create_connection(
            url,
            timeout=self._timeout,
            host=endpoint.host_header or endpoint.host,
            sslopt={
                "cert_reqs": ssl.CERT_NONE,
                "check_hostname": False,
                "server_hostname": endpoint.sni,
            },
        )
        ws.close()
