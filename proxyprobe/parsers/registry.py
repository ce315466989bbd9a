"""Pluggable parser registry.

Maps a URI scheme to its ``BaseParser``. ``parse()`` is total: whatever the
input, it returns an ``Endpoint`` or an ``Unparseable`` carrying the reason.
"""

from __future__ import annotations

import logging

from proxyprobe.errors import ParseError
from proxyprobe.models.endpoint import Endpoint, Unparseable
from proxyprobe.parsers.base import BaseParser, ParseOptions

logger = logging.getLogger(__name__)


class ParserRegistry:
    """Registry that maps URI schemes to their parser implementations."""

    def __init__(self, options: ParseOptions | None = None) -> None:
        self._parsers: dict[str, BaseParser] = {}
        self._options = options or ParseOptions()

    @property
    def options(self) -> ParseOptions:
        return self._options

    def register(self, parser: BaseParser) -> None:
        """Register a parser for its declared ``scheme``.

        Raises
        ------
        ValueError
            If a parser for the same scheme is already registered.
        """
        if parser.scheme in self._parsers:
            raise ValueError(f"Parser for scheme '{parser.scheme}' is already registered")
        self._parsers[parser.scheme] = parser
        logger.debug("Registered parser for scheme '%s'", parser.scheme)

    def get(self, scheme: str) -> BaseParser:
        """Return the parser for *scheme*.

        Raises
        ------
        KeyError
            If no parser is registered for the given scheme.
        """
        try:
            return self._parsers[scheme]
        except KeyError:
            raise KeyError(f"No parser registered for scheme '{scheme}'") from None

    def list_schemes(self) -> list[str]:
        """Return a list of all registered schemes."""
        return list(self._parsers.keys())

    def parse(self, line: str) -> Endpoint | Unparseable:
        """Decode one share link. Never raises."""
        if not isinstance(line, str):
            return Unparseable(raw=str(line), reason="line is not text")

        text = line.strip()
        # Dispatch strictly on the literal prefix
        parser = next(
            (p for p in self._parsers.values() if text.startswith(p.prefix)),
            None,
        )
        if parser is None:
            scheme = text.split("://", 1)[0] if "://" in text else ""
            return Unparseable(raw=line, reason=f"unsupported scheme '{scheme[:16]}'")

        try:
            return parser.parse_body(text[len(parser.prefix):], line, self._options)
        except ParseError as exc:
            return Unparseable(raw=line, reason=exc.message)
        except Exception as exc:  # noqa: BLE001
            # Decoders must never take the run down
            logger.debug("Unexpected %s while parsing %s link", type(exc).__name__, parser.scheme)
            return Unparseable(raw=line, reason=f"{type(exc).__name__}: {exc}")
