"""Endpoint validator: runs one candidate's probe chain.

Coordinates the full lifecycle of a single candidate:
parse → DNS (private-range policy) → WebSocket upgrade (websocket transport
only) → TCP connect → TLS/XTLS handshake (secured endpoints only).

Each stage only runs if the previous one passed, and the chain always ends
in exactly one ``ProbeOutcome``. Unexpected errors inside a stage are logged
and reported as that stage's failure outcome; nothing escapes ``check``.
"""

from __future__ import annotations

import logging
import time

from proxyprobe.models.endpoint import Endpoint, Transport, Unparseable
from proxyprobe.models.outcome import CandidateReport, ProbeOutcome, StageResult
from proxyprobe.parsers.registry import ParserRegistry
from proxyprobe.probes.dns import DnsResolver
from proxyprobe.probes.tcp import Connection, TcpProber
from proxyprobe.probes.tls import TlsProber
from proxyprobe.probes.websocket import WebSocketProber

logger = logging.getLogger(__name__)

# Outcome reported when a stage fails with an unexpected exception
_STAGE_FAILURES = {
    "dns": ProbeOutcome.DNS_FAILURE,
    "websocket": ProbeOutcome.WEBSOCKET_FAILURE,
    "tcp": ProbeOutcome.TCP_REFUSED,
    "tls": ProbeOutcome.TLS_FAILURE,
}


class EndpointValidator:
    """Runs the probe chain for one share link.

    Dependencies are injected via the constructor so the validator is
    testable without real sockets.
    """

    def __init__(
        self,
        *,
        registry: ParserRegistry,
        dns: DnsResolver,
        tcp: TcpProber,
        tls: TlsProber,
        websocket: WebSocketProber,
    ) -> None:
        self._registry = registry
        self._dns = dns
        self._tcp = tcp
        self._tls = tls
        self._websocket = websocket

    def close(self) -> None:
        """Release resources held by the probers."""
        self._websocket.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def check(self, line: str) -> CandidateReport:
        """Probe *line* and return its report. Never raises."""
        parsed = self._registry.parse(line)
        if isinstance(parsed, Unparseable):
            logger.info(
                "Config parsing failed: %s",
                parsed.reason,
                extra={"stage": "parse", "outcome": ProbeOutcome.PARSE_FAILURE, "error_reason": parsed.reason},
            )
            return CandidateReport(raw=line, outcome=ProbeOutcome.PARSE_FAILURE, detail=parsed.reason)

        started = time.monotonic()
        report = await self._probe(parsed)
        duration_ms = (time.monotonic() - started) * 1000

        log = logger.info if report.passed else logger.warning
        log(
            "Config %s: %s %s (%.0f ms)",
            "passed" if report.passed else "failed",
            parsed.protocol.value,
            parsed.address,
            duration_ms,
            extra={
                "outcome": report.outcome,
                "endpoint": parsed.address,
                "protocol": parsed.protocol,
                "duration_ms": round(duration_ms),
                "cert_expiry": report.cert_expiry,
                "error_reason": report.detail,
            },
        )
        return report

    # ------------------------------------------------------------------
    # Internal pipeline
    # ------------------------------------------------------------------

    async def _probe(self, endpoint: Endpoint) -> CandidateReport:
        stage = "dns"
        connection: Connection | None = None
        ip: str | None = None

        try:
            # 1. DNS + private-range policy
            resolved = await self._dns.resolve(endpoint.host)
            if not resolved.passed:
                return self._failed(endpoint, resolved)
            ip = resolved.value

            # 2. WebSocket upgrade on its own connection
            if endpoint.transport is Transport.WEBSOCKET:
                stage = "websocket"
                upgraded = await self._websocket.probe(endpoint)
                if not upgraded.passed:
                    return self._failed(endpoint, upgraded, ip=ip)

            # 3. TCP connect
            stage = "tcp"
            connected = await self._tcp.connect(ip, endpoint.port)
            if not connected.passed:
                return self._failed(endpoint, connected, ip=ip)
            connection = connected.value

            # 4. TLS / XTLS handshake over the open connection
            cert_expiry: str | None = None
            if endpoint.secured:
                stage = "tls"
                secured = await self._tls.secure(
                    endpoint,
                    connection,
                    reconnect=lambda: self._tcp.connect_once(ip, endpoint.port),
                )
                if not secured.passed:
                    return self._failed(endpoint, secured, ip=ip)
                cert_expiry = secured.value

            return CandidateReport(
                raw=endpoint.raw,
                outcome=ProbeOutcome.PASS,
                endpoint=endpoint,
                ip=ip,
                cert_expiry=cert_expiry,
            )

        except Exception as exc:  # noqa: BLE001
            # Catch-all so one candidate can never fail its window
            logger.error(
                "Unexpected error in %s stage for %s: %s",
                stage,
                endpoint.address,
                exc,
                exc_info=True,
                extra={"stage": stage, "endpoint": endpoint.address},
            )
            return CandidateReport(
                raw=endpoint.raw,
                outcome=_STAGE_FAILURES[stage],
                endpoint=endpoint,
                ip=ip,
                detail=f"{type(exc).__name__}: {exc}",
            )

        finally:
            if connection is not None:
                await connection.close()

    @staticmethod
    def _failed(endpoint: Endpoint, result: StageResult, *, ip: str | None = None) -> CandidateReport:
        return CandidateReport(
            raw=endpoint.raw,
            outcome=result.outcome,
            endpoint=endpoint,
            ip=ip,
            detail=result.detail,
        )
