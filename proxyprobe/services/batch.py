"""Batch orchestrator with bounded-window concurrency.

Keeps the most recent N candidate lines, splits them into consecutive
windows of K, runs every probe chain of a window concurrently, waits for the
whole window, then pauses before the next one. Passing raw lines are
collected after each window's join, so the result keeps input order without
any shared mutable state between chains.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import Protocol

from proxyprobe.errors import InputUnavailableError
from proxyprobe.models.outcome import CandidateReport, ProbeOutcome

logger = logging.getLogger(__name__)


class Checker(Protocol):
    async def check(self, line: str) -> CandidateReport: ...


def select_candidates(lines: Sequence[str], limit: int) -> list[str]:
    """Drop blank lines and keep the last *limit* in their original order."""
    if limit < 1:
        raise ValueError("limit must be at least 1")
    candidates = [line for line in lines if line.strip()]
    return candidates[-limit:]


def windows(items: Sequence[str], size: int) -> list[list[str]]:
    """Split *items* into consecutive windows of at most *size*."""
    if size < 1:
        raise ValueError("window size must be at least 1")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def read_candidate_file(path: str) -> list[str]:
    """Read newline-separated share links.

    Raises
    ------
    InputUnavailableError
        If the file cannot be read or decoded. This is the only fatal
        condition of a validation run.
    """
    try:
        # newline="" keeps line endings untouched so raw lines stay byte-identical
        with open(path, encoding="utf-8", newline="") as fh:
            text = fh.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise InputUnavailableError(f"Cannot read candidates from {path}: {exc}", path=path) from exc
    return text.split("\n")


def write_passing_file(path: str, lines: Sequence[str]) -> None:
    """Write passing lines verbatim, newline-separated."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8", newline="") as fh:
        fh.write("\n".join(lines))


class BatchRunner:
    """Run probe chains in fixed-size concurrent windows.

    Parameters
    ----------
    checker:
        Object with ``async check(line) -> CandidateReport`` (the validator).
    max_candidates:
        Only the most recent N lines are considered.
    window_size:
        Maximum number of chains in flight at once (K).
    window_pause_seconds:
        Pause between consecutive windows.
    """

    def __init__(
        self,
        checker: Checker,
        *,
        max_candidates: int = 100,
        window_size: int = 20,
        window_pause_seconds: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if window_size < 1:
            raise ValueError("window_size must be at least 1")
        if max_candidates < 1:
            raise ValueError("max_candidates must be at least 1")
        self._checker = checker
        self._max_candidates = max_candidates
        self._window_size = window_size
        self._window_pause = window_pause_seconds
        self._sleep = sleep

    async def run(self, lines: Sequence[str]) -> list[str]:
        """Return the raw lines whose probe chain passed, in input order."""
        reports = await self.run_reports(lines)
        return [report.raw for report in reports if report.passed]

    async def run_reports(self, lines: Sequence[str]) -> list[CandidateReport]:
        """Return one report per considered candidate, in input order."""
        candidates = select_candidates(lines, self._max_candidates)
        batches = windows(candidates, self._window_size)
        logger.info(
            "Testing %d of %d configs in %d windows of up to %d",
            len(candidates),
            len(lines),
            len(batches),
            self._window_size,
        )

        reports: list[CandidateReport] = []
        for index, batch in enumerate(batches):
            if index > 0 and self._window_pause > 0:
                await self._sleep(self._window_pause)
            # gather() returns results in argument order, whatever the completion order
            results = await asyncio.gather(*(self._checker.check(line) for line in batch))
            reports.extend(results)
            logger.debug(
                "Window %d/%d done: %d/%d passed",
                index + 1,
                len(batches),
                sum(1 for r in results if r.passed),
                len(results),
            )

        self._log_summary(reports)
        return reports

    @staticmethod
    def _log_summary(reports: Sequence[CandidateReport]) -> None:
        counts = Counter(report.outcome for report in reports)
        summary = ", ".join(
            f"{outcome.value}={counts[outcome]}" for outcome in ProbeOutcome if counts[outcome]
        )
        logger.info(
            "Done. %d of %d configs passed (%s)",
            counts[ProbeOutcome.PASS],
            len(reports),
            summary or "no candidates",
        )
