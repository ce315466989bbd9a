"""Normalized endpoint descriptors decoded from share links."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Protocol(str, Enum):
    """Supported share-link protocol families."""

    SHADOWSOCKS = "shadowsocks"
    VMESS = "vmess"
    VLESS = "vless"
    TROJAN = "trojan"


class Transport(str, Enum):
    """Carrier used between client and endpoint."""

    TCP = "tcp"
    WEBSOCKET = "websocket"


class TlsMode(str, Enum):
    """Transport security. XTLS shares the TLS handshake and differs only in reports."""

    NONE = "none"
    TLS = "tls"
    XTLS = "xtls"


@dataclass(frozen=True)
class ShadowsocksCredential:
    method: str
    password: str


@dataclass(frozen=True)
class UuidCredential:
    uuid: str


@dataclass(frozen=True)
class PasswordCredential:
    password: str


Credential = ShadowsocksCredential | UuidCredential | PasswordCredential


@dataclass(frozen=True)
class Endpoint:
    """A validated endpoint ready for probing.

    ``raw`` is the source line exactly as it was read; it is the only value
    that ever flows to the output file.
    """

    protocol: Protocol
    credential: Credential
    host: str
    port: int
    raw: str
    transport: Transport = Transport.TCP
    tls_mode: TlsMode = TlsMode.NONE
    host_header: str | None = None
    path: str = "/"
    tag: str = ""

    @property
    def secured(self) -> bool:
        return self.tls_mode is not TlsMode.NONE

    @property
    def sni(self) -> str:
        """Server name for TLS and WebSocket: the host override, else the host."""
        return self.host_header or self.host

    @property
    def address(self) -> str:
        """``host:port`` label used in logs."""
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class Unparseable:
    """A line the parser rejected. ``reason`` is for diagnostics only."""

    raw: str
    reason: str
