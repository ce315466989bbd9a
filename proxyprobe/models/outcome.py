"""Probe outcomes and per-stage / per-candidate result records."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from proxyprobe.models.endpoint import Endpoint


class ProbeOutcome(str, Enum):
    """Final (or per-stage) verdict for a candidate. Only PASS reaches the output."""

    PASS = "pass"
    PARSE_FAILURE = "parse-failure"
    DNS_FAILURE = "dns-failure"
    PRIVATE_ADDRESS = "private-address"
    TCP_REFUSED = "tcp-refused"
    TCP_TIMEOUT = "tcp-timeout"
    TLS_FAILURE = "tls-failure"
    WEBSOCKET_TIMEOUT = "websocket-timeout"
    WEBSOCKET_FAILURE = "websocket-failure"


@dataclass
class StageResult:
    """Outcome of one probe stage.

    ``value`` carries what the stage produced on success: the resolved IP for
    DNS, an open connection for TCP, the certificate expiry for TLS.
    """

    outcome: ProbeOutcome
    detail: str = ""
    value: Any = None

    @property
    def passed(self) -> bool:
        return self.outcome is ProbeOutcome.PASS


@dataclass
class CandidateReport:
    """Final result of one candidate's probe chain."""

    raw: str
    outcome: ProbeOutcome
    endpoint: Endpoint | None = None
    ip: str | None = None
    cert_expiry: str | None = None
    detail: str = ""

    @property
    def passed(self) -> bool:
        return self.outcome is ProbeOutcome.PASS
