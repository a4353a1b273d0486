# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: sqlspy
"""
Shared plumbing of the DB-API spies.

A spy forwards every attribute it does not implement to the real driver
object, including assignments, so driver extensions keep working. Only the
calls that matter for logging are intercepted.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from sqlspy.context import CallContext

if TYPE_CHECKING:
    from sqlspy.runtime import Instrumentation


def render_arg(value: Any) -> str:
    """Text of one call argument for a CallContext."""
    if isinstance(value, str):
        return value
    return repr(value)


def describe(value: Any) -> str:
    """Text logged after ``returned`` for a call's result."""
    if value is None:
        return ""
    if isinstance(value, (bool, int, float, str)):
        return str(value)
    if isinstance(value, tuple):
        return repr(value)
    return type(value).__name__


class SpyBase:
    """Forwarding wrapper around one real driver object."""

    _real: Any
    _spy: Instrumentation

    def __init__(self, real: Any, instrumentation: Instrumentation) -> None:
        object.__setattr__(self, "_real", real)
        object.__setattr__(self, "_spy", instrumentation)

    @property
    def connection_id(self) -> int:
        raise NotImplementedError

    def _context(self, class_type: str, method: str, *args: Any) -> CallContext:
        return CallContext(
            class_type=class_type,
            method=method,
            args=tuple(render_arg(arg) for arg in args),
            connection_id=self.connection_id,
        )

    def _invoke(
        self,
        ctx: CallContext,
        operation: Callable[..., Any],
        *args: Any,
        render: Callable[[Any], str] = describe,
        **kwargs: Any,
    ) -> Any:
        """Call the real method, reporting its result or its failure."""
        try:
            result = operation(*args, **kwargs)
        except Exception as exc:
            self._spy.router.exception_occurred(ctx, exc)
            raise
        self._spy.router.method_returned(ctx, render(result))
        return result

    def __getattr__(self, name: str) -> Any:
        if name == "_real":
            raise AttributeError(name)
        return getattr(self._real, name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_"):
            object.__setattr__(self, name, value)
        else:
            setattr(self._real, name, value)
