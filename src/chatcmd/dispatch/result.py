"""What one handled line produced.

INVARIANT: ``Dispatcher.handle`` always returns a DispatchResult; user
errors and handler failures are reported here (and to the transport),
never raised.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class DispatchStatus(StrEnum):
    IGNORED = "ignored"
    DENIED = "denied"
    USAGE = "usage"
    INVALID = "invalid"
    ERROR = "error"
    OK = "ok"


class DispatchError(BaseModel):
    """Structured error payload within a DispatchResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class DispatchResult(BaseModel):
    """Outcome of dispatching one line.

    Attributes:
        ok: Whether the handler ran and its output (if any) was delivered.
        status: How far dispatch got.
        command: Primary name of the matched command, if any.
        outputs: Values handed to the transport, in order.
        error: Structured error when ``ok`` is False and a reply was sent.
    """

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    ok: bool
    status: DispatchStatus
    command: str | None = None
    outputs: list[Any] = Field(default_factory=list)
    error: DispatchError | None = None

    @classmethod
    def ignored(cls) -> DispatchResult:
        return cls(ok=False, status=DispatchStatus.IGNORED)
