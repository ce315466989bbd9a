"""Public models for proxyprobe."""

from proxyprobe.models.endpoint import (
    Credential,
    Endpoint,
    PasswordCredential,
    Protocol,
    ShadowsocksCredential,
    TlsMode,
    Transport,
    Unparseable,
    UuidCredential,
)
from proxyprobe.models.outcome import CandidateReport, ProbeOutcome, StageResult

__all__ = [
    "CandidateReport",
    "Credential",
    "Endpoint",
    "PasswordCredential",
    "ProbeOutcome",
    "Protocol",
    "ShadowsocksCredential",
    "StageResult",
    "TlsMode",
    "Transport",
    "Unparseable",
    "UuidCredential",
]
