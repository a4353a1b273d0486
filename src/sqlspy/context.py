# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: sqlspy
"""
Per-call context and routed log events.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

from sqlspy.logging.channels import Channel
from sqlspy.logging.level import LogLevel

CONNECTION: Final = "Connection"
STATEMENT: Final = "Statement"
PREPARED_STATEMENT: Final = "PreparedStatement"
RESULT_SET: Final = "ResultSet"


@dataclass(frozen=True)
class CallContext:
    """
    One observed call against a wrapped driver object.

    Attributes:
        class_type: Kind of object the call was made on (Connection,
            Statement, PreparedStatement or ResultSet)
        method: Name of the called method
        args: Rendered arguments, already converted to text
        connection_id: Id of the logical connection the call belongs to
    """

    class_type: str
    method: str
    args: tuple[str, ...] = field(default_factory=tuple)
    connection_id: int = 0

    @property
    def method_call(self) -> str:
        return f"{self.method}({', '.join(self.args)})"

    @property
    def header(self) -> str:
        """`<id>. <ClassType>.<method_call>` prefix shared by most log lines."""
        return f"{self.connection_id}. {self.class_type}.{self.method_call}"

    @property
    def is_result_set(self) -> bool:
        return self.class_type == RESULT_SET


@dataclass(frozen=True)
class LogEvent:
    """A message bound for one channel at one severity."""

    channel: Channel
    severity: LogLevel
    message: str
    error: BaseException | None = None
