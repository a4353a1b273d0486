# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: sqlspy
"""
Offline profiling of a timing-channel log.

The input is what the timing file handler writes: one entry per logged
statement, entries separated by a blank line, each entry ending with an
``{executed in N msec}`` or ``{executed in N nanoSec}`` marker.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from sqlspy.timing import NANOS_PER_MSEC, TimingUnit

logger = logging.getLogger(__name__)

_EXECUTED: Final = re.compile(r"\{executed in (\d+) (msec|nanoSec)\}\s*$")

_MARKER_UNITS: Final = {"msec": TimingUnit.MSEC, "nanoSec": TimingUnit.NANOSEC}


def _convert(amount: int, source: TimingUnit, target: TimingUnit) -> int:
    if source is target:
        return amount
    if target is TimingUnit.NANOSEC:
        return amount * NANOS_PER_MSEC
    return amount // NANOS_PER_MSEC


@dataclass(frozen=True)
class ProfiledSql:
    """A flagged statement and its elapsed time in the report's unit."""

    elapsed: int
    sql: str


@dataclass
class ProfileReport:
    """Counters accumulated over a timing log."""

    threshold: int = 100
    unit: TimingUnit = TimingUnit.MSEC
    lines: int = 0
    total_sql: int = 0
    total_time: int = 0
    max_time: int = 0
    malformed: int = 0
    flagged: list[ProfiledSql] = field(default_factory=list)

    @classmethod
    def from_lines(
        cls,
        lines: Iterable[str],
        threshold: int = 100,
        unit: TimingUnit = TimingUnit.MSEC,
    ) -> ProfileReport:
        """Build a report from log lines.

        Args:
            lines: Lines of a timing log, with or without line endings
            threshold: Entries taking strictly longer than this are flagged
            unit: Unit of the threshold and of every reported time

        Returns:
            The populated report
        """
        report = cls(threshold=threshold, unit=unit)
        entry: list[str] = []
        for raw in lines:
            line = raw.rstrip("\r\n")
            report.lines += 1
            if line.strip():
                entry.append(line)
            elif entry:
                report.add_entry(" ".join(entry), report.lines)
                entry = []
        if entry:
            report.add_entry(" ".join(entry), report.lines)
        return report

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        threshold: int = 100,
        unit: TimingUnit = TimingUnit.MSEC,
    ) -> ProfileReport:
        with open(path, encoding="utf-8") as handle:
            return cls.from_lines(handle, threshold=threshold, unit=unit)

    def add_entry(self, text: str, line_no: int = 0) -> bool:
        """Account for one entry.

        Returns:
            False when the entry has no timing marker and was skipped
        """
        match = _EXECUTED.search(text)
        if match is None:
            self.malformed += 1
            logger.warning("sql without timing info found at line %d", line_no)
            return False

        source = _MARKER_UNITS[match.group(2)]
        elapsed = _convert(int(match.group(1)), source, self.unit)
        self.total_sql += 1
        self.total_time += elapsed
        self.max_time = max(self.max_time, elapsed)
        if elapsed > self.threshold:
            self.flagged.append(ProfiledSql(elapsed, text))
        return True

    @property
    def flagged_count(self) -> int:
        return len(self.flagged)

    @property
    def flagged_total(self) -> int:
        return sum(item.elapsed for item in self.flagged)

    @property
    def average(self) -> int | None:
        # TODO: confirm intent of average computation, it divides the
        # statement count by the total time rather than the reverse
        if self.total_time <= 0:
            return None
        return self.total_sql // self.total_time

    @property
    def flagged_average(self) -> int | None:
        if not self.flagged:
            return None
        return self.flagged_total // self.flagged_count

    def top(self, count: int = 1000) -> list[ProfiledSql]:
        """Slowest flagged statements, slowest first."""
        ranked = sorted(self.flagged, key=lambda item: item.elapsed, reverse=True)
        return ranked[: max(count, 0)]

    def render(self, top: int = 1000) -> str:
        """Text report with summary counters and the top offenders."""
        label = self.unit.label
        out = [
            f"processed {self.lines} lines.",
            f"Number of sql statements:  {self.total_sql}",
            f"Total number of {label}    :  {self.total_time}",
        ]
        if self.average is not None:
            out.append(f"Average {label}/statement  :  {self.average}")
        if self.malformed:
            out.append(f"Entries without timing info skipped:  {self.malformed}")

        if self.flagged:
            out.extend(
                [
                    f"Sql statements that took more than {self.threshold} {label} "
                    "were flagged.",
                    f"Flagged sql statements              :  {self.flagged_count}",
                    f"Flagged sql Total number of {label}    :  {self.flagged_total}",
                    f"Flagged sql Average {label}/statement  :  "
                    f"{self.flagged_average}",
                ]
            )
            offenders = self.top(top)
            plural = "" if len(offenders) == 1 else "s"
            out.append(f"top {len(offenders)} offender{plural}:")
            width = len(str(self.max_time))
            out.extend(
                f"{str(item.elapsed).rjust(width)} {item.sql}" for item in offenders
            )
        return "\n".join(out)
