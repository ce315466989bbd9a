"""Share-link parsers for the four supported protocol families."""

from __future__ import annotations

from proxyprobe.config.probe_policy import ProbePolicy
from proxyprobe.models.endpoint import Endpoint, Unparseable
from proxyprobe.parsers.base import BaseParser, ParseOptions
from proxyprobe.parsers.registry import ParserRegistry
from proxyprobe.parsers.shadowsocks import ShadowsocksParser
from proxyprobe.parsers.vless import TrojanParser, VlessParser
from proxyprobe.parsers.vmess import VmessParser


def build_registry(options: ParseOptions | None = None) -> ParserRegistry:
    """Create a registry with every built-in parser registered."""
    registry = ParserRegistry(options)
    registry.register(ShadowsocksParser())
    registry.register(VmessParser())
    registry.register(VlessParser())
    registry.register(TrojanParser())
    return registry


def options_from_policy(policy: ProbePolicy) -> ParseOptions:
    return ParseOptions(
        strict_uuid=policy.strict_uuid,
        shadowsocks_ciphers=frozenset(policy.shadowsocks_ciphers),
    )


_default_registry = build_registry()


def parse(line: str) -> Endpoint | Unparseable:
    """Decode *line* with the default policy. Never raises."""
    return _default_registry.parse(line)


__all__ = [
    "BaseParser",
    "ParseOptions",
    "ParserRegistry",
    "ShadowsocksParser",
    "TrojanParser",
    "VlessParser",
    "VmessParser",
    "build_registry",
    "options_from_policy",
    "parse",
]
