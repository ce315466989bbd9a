"""Network probes: DNS, TCP, TLS/XTLS and WebSocket."""

from proxyprobe.probes.dns import DnsResolver, getaddrinfo_lookup, is_private_ip
from proxyprobe.probes.tcp import Connection, TcpProber
from proxyprobe.probes.tls import CERT_UNAVAILABLE, TlsProber, certificate_expiry, create_insecure_context
from proxyprobe.probes.websocket import WebSocketProber, build_url

__all__ = [
    "CERT_UNAVAILABLE",
    "Connection",
    "DnsResolver",
    "TcpProber",
    "TlsProber",
    "WebSocketProber",
    "build_url",
    "certificate_expiry",
    "create_insecure_context",
    "getaddrinfo_lookup",
    "is_private_ip",
]
