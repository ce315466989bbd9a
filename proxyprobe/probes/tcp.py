"""TCP connect probe.

A connect that times out is terminal (``tcp-timeout``): another attempt
under the same network conditions is not expected to succeed. A refused
connection or any other socket error is ``tcp-refused`` and is retried.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from proxyprobe.models.outcome import ProbeOutcome, StageResult
from proxyprobe.resilience.retry import RetryPolicy, Sleep

logger = logging.getLogger(__name__)

OpenConnection = Callable[..., Any]


@dataclass
class Connection:
    """An open stream pair. ``close()`` never raises."""

    reader: asyncio.StreamReader
    writer: asyncio.StreamWriter

    async def close(self) -> None:
        try:
            self.writer.close()
            await self.writer.wait_closed()
        except Exception:  # noqa: BLE001
            # Peer resets while closing are irrelevant to the verdict
            logger.debug("Ignored error while closing connection", exc_info=True)


class TcpProber:
    """Open TCP connections with a connect timeout and retry on refusal.

    Args:
        retry: Attempt bound and delay; ``TCP_TIMEOUT`` is always terminal.
        timeout_seconds: Connect timeout for a single attempt.
        open_connection: ``asyncio.open_connection`` compatible factory.
    """

    def __init__(
        self,
        retry: RetryPolicy,
        timeout_seconds: float,
        open_connection: OpenConnection = asyncio.open_connection,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._retry = RetryPolicy(
            max_attempts=retry.max_attempts,
            delay_seconds=retry.delay_seconds,
            terminal=retry.terminal | {ProbeOutcome.TCP_TIMEOUT},
        )
        self._timeout = timeout_seconds
        self._open_connection = open_connection
        self._sleep = sleep

    async def connect(self, ip: str, port: int) -> StageResult:
        """Connect with retries; on success ``value`` is an open ``Connection``."""

        async def attempt(_: int) -> StageResult:
            return await self.connect_once(ip, port)

        target = f"[{ip}]:{port}" if ":" in ip else f"{ip}:{port}"
        return await self._retry.run("tcp", target, attempt, sleep=self._sleep)

    async def connect_once(self, ip: str, port: int) -> StageResult:
        """Single connect attempt, no retry."""
        try:
            reader, writer = await asyncio.wait_for(
                self._open_connection(ip, port),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            return StageResult(ProbeOutcome.TCP_TIMEOUT, detail=f"connect timed out after {self._timeout}s")
        except ConnectionRefusedError as exc:
            return StageResult(ProbeOutcome.TCP_REFUSED, detail=str(exc) or "connection refused")
        except OSError as exc:
            return StageResult(ProbeOutcome.TCP_REFUSED, detail=str(exc) or type(exc).__name__)

        return StageResult(ProbeOutcome.PASS, value=Connection(reader, writer))
