"""Fixed-delay retry policy shared by every probe stage.

A stage is an async callable taking the 1-based attempt number and returning
a ``StageResult``. The policy re-runs it until it passes, returns a terminal
outcome, or the attempt bound is reached, sleeping a fixed delay between
attempts. Every attempt is logged with its stage, attempt number and outcome.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field

from proxyprobe.config.probe_policy import StageRetry
from proxyprobe.models.outcome import ProbeOutcome, StageResult

logger = logging.getLogger(__name__)

StageAttempt = Callable[[int], Awaitable[StageResult]]
Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt bound, inter-attempt delay and the outcomes that stop retrying."""

    max_attempts: int = 3
    delay_seconds: float = 1.0
    terminal: frozenset[ProbeOutcome] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds must not be negative")

    @classmethod
    def from_stage(cls, stage: StageRetry, terminal: Iterable[ProbeOutcome] = ()) -> RetryPolicy:
        return cls(
            max_attempts=stage.max_attempts,
            delay_seconds=stage.delay_seconds,
            terminal=frozenset(terminal),
        )

    def is_terminal(self, result: StageResult) -> bool:
        return result.passed or result.outcome in self.terminal

    async def run(
        self,
        stage: str,
        target: str,
        attempt_fn: StageAttempt,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> StageResult:
        """Run *attempt_fn* under this policy and return the last result."""
        attempt = 1
        while True:
            result = await attempt_fn(attempt)
            log = logger.info if result.passed else logger.warning
            log(
                "%s attempt %d/%d for %s: %s%s",
                stage,
                attempt,
                self.max_attempts,
                target,
                result.outcome.value,
                f" ({result.detail})" if result.detail else "",
                extra={
                    "stage": stage,
                    "attempt": attempt,
                    "max_attempts": self.max_attempts,
                    "outcome": result.outcome,
                    "endpoint": target,
                },
            )
            if self.is_terminal(result) or attempt >= self.max_attempts:
                return result
            await sleep(self.delay_seconds)
            attempt += 1
