"""Error hierarchy for proxyprobe.

Probe failures are never raised; they are reported as ``ProbeOutcome`` values.
The errors below cover the conditions that stop a run (unreadable input,
unreachable subscription) plus the internal ``ParseError`` that parsers use
and that ``parse()`` converts into ``Unparseable``.
"""

from __future__ import annotations


class ProxyProbeError(Exception):
    """Base error for all proxyprobe-specific errors."""

    exit_code: int = 1
    message: str = "proxyprobe failed"

    def __init__(self, message: str | None = None, **kwargs: object) -> None:
        self.message = message or self.__class__.message
        self.details = kwargs
        super().__init__(self.message)


class InputUnavailableError(ProxyProbeError):
    """The candidate input file could not be read."""

    exit_code = 2
    message = "Candidate input file could not be read"


class SubscriptionFetchError(ProxyProbeError):
    """The subscription payload could not be fetched and no cache was usable."""

    exit_code = 3
    message = "Subscription payload could not be fetched"


class ParseError(ProxyProbeError):
    """A share link could not be decoded into an endpoint."""

    message = "Unparseable share link"
