# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: sqlspy
"""
Execution timing and threshold-based severity selection.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

from sqlspy.logging.level import LogLevel

R = TypeVar("R")

NANOS_PER_MSEC = 1_000_000


class TimingUnit(str, Enum):
    """Unit used when writing elapsed time to the timing channel."""

    MSEC = "msec"
    NANOSEC = "nanosec"

    @property
    def label(self) -> str:
        return "msec" if self is TimingUnit.MSEC else "nanoSec"


@dataclass(frozen=True)
class Elapsed:
    """Elapsed wall time of one bracketed operation."""

    nanos: int

    @property
    def msec(self) -> int:
        return self.nanos // NANOS_PER_MSEC

    def amount(self, unit: TimingUnit) -> int:
        return self.msec if unit is TimingUnit.MSEC else self.nanos

    def executed_marker(self, unit: TimingUnit = TimingUnit.MSEC) -> str:
        """``{executed in N msec}`` or ``{executed in N nanoSec}``."""
        return f"{{executed in {self.amount(unit)} {unit.label}}}"

    def failed_marker(self) -> str:
        return f"{{FAILED after {self.msec} msec}}"


@dataclass(frozen=True)
class TimingThresholds:
    """
    Warn and error limits for timed SQL, in milliseconds.

    A disabled limit never escalates; an enabled one escalates when the
    elapsed time reaches it (the comparison is inclusive).
    """

    warn_enabled: bool = False
    warn_msec: int = 0
    error_enabled: bool = False
    error_msec: int = 0

    @classmethod
    def from_limits(cls, warn: int | None, error: int | None) -> TimingThresholds:
        """Build thresholds where None means the limit is disabled."""
        return cls(
            warn_enabled=warn is not None,
            warn_msec=warn or 0,
            error_enabled=error is not None,
            error_msec=error or 0,
        )

    def classify(self, elapsed_msec: int, debug_enabled: bool) -> LogLevel:
        """Pick the level a timing entry is logged at.

        Args:
            elapsed_msec: Elapsed time in milliseconds
            debug_enabled: Whether the timing channel accepts debug detail

        Returns:
            ERROR or WARNING when a limit is reached, otherwise DEBUG or INFO
        """
        if self.error_enabled and elapsed_msec >= self.error_msec:
            return LogLevel.ERROR
        if self.warn_enabled and elapsed_msec >= self.warn_msec:
            return LogLevel.WARNING
        return LogLevel.DEBUG if debug_enabled else LogLevel.INFO


class TimingRecorder:
    """Brackets a blocking call with a monotonic clock."""

    def __init__(self, clock: Callable[[], int] = time.perf_counter_ns) -> None:
        self._clock = clock

    def around(
        self,
        operation: Callable[..., R],
        *args: Any,
        on_failure: Callable[[BaseException, Elapsed], None] | None = None,
        **kwargs: Any,
    ) -> tuple[R, Elapsed]:
        """
        Run an operation and measure how long it took.

        When the operation raises, ``on_failure`` receives the exception and
        the elapsed time, then the exception is re-raised untouched.

        Args:
            operation: The call to time
            *args: Positional arguments for the call
            on_failure: Optional failure observer
            **kwargs: Keyword arguments for the call

        Returns:
            The operation's result and its elapsed time
        """
        start = self._clock()
        try:
            result = operation(*args, **kwargs)
        except BaseException as exc:
            elapsed = Elapsed(self._clock() - start)
            if on_failure is not None:
                on_failure(exc, elapsed)
            raise
        return result, Elapsed(self._clock() - start)
