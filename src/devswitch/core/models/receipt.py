"""
Receipt model — the external-command contract.

Every call out to an external program (the package manager, the JDK
registry helper, a toolchain binary) comes back as a Receipt. Adapters
NEVER raise for launch failures, timeouts, or non-zero exits — the
outcome is captured here and the caller decides what it means.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Receipt(BaseModel):
    """Result of one external command execution."""

    tool: str                       # runner name, e.g. "subprocess"
    command: list[str] = Field(default_factory=list)
    status: Literal["ok", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    returncode: int | None = None
    stdout: str = ""
    stderr: str = ""
    error: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the command ran and exited zero."""
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @classmethod
    def success(
        cls,
        tool: str,
        command: list[str],
        stdout: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a success receipt."""
        kwargs.setdefault("returncode", 0)
        return cls(
            tool=tool,
            command=list(command),
            status="ok",
            stdout=stdout,
            **kwargs,
        )

    @classmethod
    def failure(
        cls,
        tool: str,
        command: list[str],
        error: str,
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt."""
        return cls(
            tool=tool,
            command=list(command),
            status="failed",
            error=error,
            **kwargs,
        )
