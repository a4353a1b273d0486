# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: sqlspy
"""
Bound parameter tracking and literal SQL reconstruction.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Final

from sqlspy.dialects import Dialect, DialectFormatter

PLACEHOLDER: Final = "?"


class _Unset:
    """Marker for a placeholder position that was never bound."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Final = _Unset()


@dataclass(frozen=True)
class BindParameter:
    """One tracked position: 1-based index, optional type hint, formatted text."""

    index: int
    type_hint: str | None
    value: str | _Unset

    @property
    def is_set(self) -> bool:
        return self.value is not UNSET


class BindParameterTracker:
    """
    Sparse, 1-based list of formatted parameter values for one cursor.

    Gaps left by out-of-order binding hold an explicit UNSET entry, so the
    backing list is always at least as long as the highest index ever set.
    Every operation holds the tracker's lock.
    """

    def __init__(
        self,
        formatter: DialectFormatter | None = None,
        dialect: Dialect = Dialect.DEFAULT,
        show_type_help: bool = False,
    ) -> None:
        self.formatter = formatter or DialectFormatter()
        self.dialect = dialect
        self.show_type_help = show_type_help
        self._lock = threading.Lock()
        self._params: list[BindParameter] = []

    def set(self, index: int, type_hint: str | None, value: str) -> None:
        """Record the formatted text bound at a position.

        Args:
            index: 1-based placeholder position
            type_hint: Optional type description, e.g. ``(int)``
            value: Already formatted literal text

        Raises:
            ValueError: If index is lower than 1
        """
        if index < 1:
            raise ValueError(f"bind parameter index must be 1 or greater, got {index}")
        if not isinstance(value, str):
            value = str(value)
        with self._lock:
            position = index - 1
            while len(self._params) <= position:
                self._params.append(
                    BindParameter(len(self._params) + 1, None, UNSET)
                )
            self._params[position] = BindParameter(index, type_hint, value)

    def bind(self, index: int, raw_value: Any) -> None:
        """Format a raw Python value for the tracker's dialect and record it."""
        text = self.formatter.format(raw_value, self.dialect)
        self.set(index, f"({type(raw_value).__name__})", text)

    def bind_all(self, values: Iterable[Any]) -> list[str | None]:
        """Replace the tracked values with a positional parameter sequence.

        Values are formatted first, then swapped in as a whole, so a reader
        never sees a partly rebound tracker.

        Returns:
            Snapshot of the new values, as ``formatted`` would return it
        """
        params = [
            BindParameter(
                index,
                f"({type(value).__name__})",
                self.formatter.format(value, self.dialect),
            )
            for index, value in enumerate(values, start=1)
        ]
        with self._lock:
            self._params = params
            return self._snapshot()

    def get(self, index: int) -> str | None:
        """Formatted text at a 1-based position, None when unset or out of range."""
        with self._lock:
            return self._get(index)

    def _get(self, index: int) -> str | None:
        if index < 1 or index > len(self._params):
            return None
        param = self._params[index - 1]
        if not param.is_set:
            return None
        if self.show_type_help and param.type_hint:
            return f"{param.type_hint}{param.value}"
        return str(param.value)

    def formatted(self) -> list[str | None]:
        """Point-in-time list of every position as returned by ``get``."""
        with self._lock:
            return self._snapshot()

    def _snapshot(self) -> list[str | None]:
        return [self._get(i) for i in range(1, len(self._params) + 1)]

    def parameters(self) -> tuple[BindParameter, ...]:
        with self._lock:
            return tuple(self._params)

    def clear(self) -> None:
        with self._lock:
            self._params.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._params)


def reconstruct(template: str, tracker: BindParameterTracker) -> str:
    """
    Substitute tracked values into a SQL template.

    The Nth ``?`` in the template, counting from the left, is replaced by
    ``tracker.get(N)``. Positions the tracker has no value for stay as a
    literal ``?``; tracked values beyond the last placeholder are ignored.
    Every other character is copied unchanged.

    Args:
        template: SQL text with ``?`` placeholders
        tracker: Source of formatted parameter values

    Returns:
        The literal SQL text
    """
    return substitute(template, tracker.formatted())


def substitute(template: str, values: Sequence[str | None]) -> str:
    """Substitute a snapshot of formatted values, None leaving a ``?``."""
    pieces: list[str] = []
    start = 0
    ordinal = 0
    while True:
        position = template.find(PLACEHOLDER, start)
        if position < 0:
            break
        pieces.append(template[start:position])
        value = values[ordinal] if ordinal < len(values) else None
        pieces.append(PLACEHOLDER if value is None else value)
        ordinal += 1
        start = position + 1
    pieces.append(template[start:])
    return "".join(pieces)
