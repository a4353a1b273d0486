# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: sqlspy
"""
Attribution of logged events to the application code that caused them.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from types import FrameType
from typing import Final, Protocol, runtime_checkable

INSTRUMENTATION_NAMESPACE: Final = "sqlspy"


@dataclass(frozen=True)
class FrameInfo:
    """One stack frame reduced to what a log line needs."""

    module: str
    function: str
    filename: str
    lineno: int

    @classmethod
    def from_frame(cls, frame: FrameType) -> FrameInfo:
        return cls(
            module=frame.f_globals.get("__name__", "?"),
            function=frame.f_code.co_name,
            filename=frame.f_code.co_filename,
            lineno=frame.f_lineno,
        )

    def render(self) -> str:
        return (
            f"{self.module}.{self.function}"
            f"({os.path.basename(self.filename)}:{self.lineno})"
        )

    def __str__(self) -> str:
        return self.render()


def in_namespace(module: str, namespace: str = INSTRUMENTATION_NAMESPACE) -> bool:
    return module == namespace or module.startswith(namespace + ".")


def attribute(
    frames: Sequence[FrameInfo],
    namespace: str = INSTRUMENTATION_NAMESPACE,
    prefix: str | None = None,
) -> FrameInfo | None:
    """
    Find the frame a logged event should be attributed to.

    Frames are walked from the innermost outward. The outermost frame that
    belongs to ``namespace`` is remembered. With a ``prefix`` the walk stops
    at the first other frame whose module starts with it, and that frame is
    reported. Otherwise the frame just outside the outermost instrumentation
    frame (the direct caller) is reported.

    Args:
        frames: Stack frames, innermost first
        namespace: Module namespace of the instrumentation library
        prefix: Optional application package prefix

    Returns:
        The attributed frame, or None for an empty stack
    """
    last_instrumented: int | None = None
    for index, frame in enumerate(frames):
        if in_namespace(frame.module, namespace):
            last_instrumented = index
        elif prefix and frame.module.startswith(prefix):
            return frame

    if last_instrumented is None:
        return frames[0] if frames else None
    caller = last_instrumented + 1
    if caller < len(frames):
        return frames[caller]
    return frames[last_instrumented]


def application_frames(
    frames: Sequence[FrameInfo],
    namespace: str = INSTRUMENTATION_NAMESPACE,
) -> list[FrameInfo]:
    """Every frame outside the instrumentation namespace, in original order."""
    return [frame for frame in frames if not in_namespace(frame.module, namespace)]


def capture_frames(skip: int = 1) -> list[FrameInfo]:
    """Frames of the current thread, innermost first.

    Args:
        skip: Number of innermost frames to leave out (1 skips the caller of
            this function's own frame)
    """
    frames: list[FrameInfo] = []
    frame: FrameType | None = sys._getframe(skip)
    while frame is not None:
        frames.append(FrameInfo.from_frame(frame))
        frame = frame.f_back
    return frames


@runtime_checkable
class CallSiteResolver(Protocol):
    """Produces the call-site text appended to debug-level log lines."""

    def resolve(self, frames: Sequence[FrameInfo] | None = None) -> str | None: ...


class StackCallSiteResolver:
    """Reads the current thread's stack with ``sys._getframe``."""

    def __init__(
        self,
        prefix: str | None = None,
        full: bool = False,
        namespace: str = INSTRUMENTATION_NAMESPACE,
    ) -> None:
        """
        Args:
            prefix: Application package prefix to attribute to
            full: Report every application frame instead of a single one
            namespace: Module namespace of the instrumentation library
        """
        self.prefix = prefix
        self.full = full
        self.namespace = namespace

    def resolve(self, frames: Sequence[FrameInfo] | None = None) -> str | None:
        if frames is None:
            frames = capture_frames(skip=2)
        if self.full:
            outside = application_frames(frames, self.namespace)
            if not outside:
                return None
            return "\n".join(f"  at {frame.render()}" for frame in outside).lstrip()
        frame = attribute(frames, self.namespace, self.prefix)
        return frame.render() if frame is not None else None
