"""Abstract base class for scheme-specific share-link parsers, plus the
decoding helpers they share.

Each parser handles a single URI scheme. Parsers signal any problem by
raising ``ParseError``; the registry turns that into ``Unparseable`` so
callers never see an exception.
"""

from __future__ import annotations

import base64
import binascii
import re
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from urllib.parse import unquote

from proxyprobe.config.probe_policy import DEFAULT_SHADOWSOCKS_CIPHERS
from proxyprobe.errors import ParseError
from proxyprobe.models.endpoint import Endpoint, Protocol

_CANONICAL_UUID = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE
)
_BASE64_BODY = re.compile(r"[A-Za-z0-9+/\-_]*={0,2}")


@dataclass(frozen=True)
class ParseOptions:
    """Validation knobs taken from the probe policy."""

    strict_uuid: bool = True
    shadowsocks_ciphers: frozenset[str] = field(
        default_factory=lambda: frozenset(DEFAULT_SHADOWSOCKS_CIPHERS)
    )


class BaseParser(ABC):
    """Base parser that all scheme parsers extend.

    Subclasses MUST set ``scheme`` (without ``://``) and ``protocol`` and
    implement ``parse_body``.
    """

    scheme: str
    protocol: Protocol

    @property
    def prefix(self) -> str:
        return f"{self.scheme}://"

    @abstractmethod
    def parse_body(self, body: str, raw: str, options: ParseOptions) -> Endpoint:
        """Decode *body* (the line with the ``scheme://`` prefix removed).

        Raises
        ------
        ParseError
            If the body is malformed or fails credential validation.
        """
        ...


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def decode_base64(text: str) -> str:
    """Decode standard or URL-safe base64, padded or not, into UTF-8 text."""
    compact = "".join(text.split())
    if not compact or not _BASE64_BODY.fullmatch(compact):
        raise ParseError("invalid base64 payload")
    compact = compact.rstrip("=").replace("-", "+").replace("_", "/")
    compact += "=" * (-len(compact) % 4)
    try:
        return base64.b64decode(compact, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise ParseError(f"invalid base64 payload: {exc}") from None


def split_fragment(text: str) -> tuple[str, str]:
    """Split ``body#tag`` and percent-decode the tag."""
    body, _, tag = text.partition("#")
    return body, unquote(tag)


def parse_port(value: object) -> int:
    """Parse a decimal port and enforce the 1-65535 range."""
    if isinstance(value, bool):
        raise ParseError(f"invalid port: {value!r}")
    if isinstance(value, int):
        port = value
    else:
        text = str(value).strip()
        if not text.isascii() or not text.isdigit():
            raise ParseError(f"invalid port: {value!r}")
        port = int(text)
    if not 1 <= port <= 65535:
        raise ParseError(f"port out of range: {port}")
    return port


def split_host_port(authority: str) -> tuple[str, int]:
    """Split ``host:port`` or ``[v6]:port`` into a non-empty host and a port."""
    authority = authority.strip()
    if authority.startswith("["):
        host, sep, rest = authority[1:].partition("]")
        if not sep or not rest.startswith(":"):
            raise ParseError("malformed IPv6 authority")
        port_text = rest[1:]
    else:
        host, sep, port_text = authority.rpartition(":")
        if not sep:
            raise ParseError("missing port")
    host = host.strip()
    if not host:
        raise ParseError("missing host")
    return host, parse_port(port_text)


def parse_query(query: str) -> dict[str, str]:
    """Parse ``a=1&b=2`` into a flat map with percent-decoded values."""
    params: dict[str, str] = {}
    if not query:
        return params
    for pair in query.split("&"):
        if not pair:
            continue
        key, _, value = pair.partition("=")
        params[key] = unquote(value) if value else ""
    return params


def validate_uuid(value: object, *, strict: bool = True) -> str:
    """Return *value* if it is a UUID.

    Strict mode accepts only the canonical 8-4-4-4-12 hex form. Lenient mode
    accepts anything ``uuid.UUID`` does (hyphenless, braces, urn prefix).
    """
    if not isinstance(value, str):
        raise ParseError("uuid is not a string")
    if strict:
        if not _CANONICAL_UUID.fullmatch(value):
            raise ParseError("invalid UUID format")
        return value
    try:
        uuid.UUID(value)
    except ValueError:
        raise ParseError("invalid UUID format") from None
    return value
