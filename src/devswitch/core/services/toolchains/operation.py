"""
Streamed package-manager operations.

An install or uninstall is a one-shot state machine::

    idle ──▶ running ──▶ succeeded
                    └──▶ failed

Both end states are terminal; there is no retry, pause or cancel.
Output is consumed as a finite sequence of ``OutputChunk`` values, each
carrying the raw text and, when the text holds a ``NN.N%`` figure, the
download progress parsed from it.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator

from devswitch.adapters.base import CommandStream

logger = logging.getLogger(__name__)

_PERCENT_RE = re.compile(r"(\d+\.?\d*)%")
_BARE_PERCENT_RE = re.compile(r"^\d+\.?\d*%$")

OutputSink = Callable[[str], None]
ProgressSink = Callable[[float], None]


class OperationState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (OperationState.SUCCEEDED, OperationState.FAILED)


@dataclass(frozen=True)
class OutputChunk:
    """One piece of streamed output."""

    text: str
    progress: float | None = None       # percent, when the chunk carries one


def parse_progress(text: str) -> float | None:
    """The trailing ``NN.N%`` figure in ``text``, clamped to 0–100."""
    matches = _PERCENT_RE.findall(text)
    if not matches:
        return None
    try:
        value = float(matches[-1])
    except ValueError:
        return None
    return max(0.0, min(100.0, value))


def filter_output_lines(text: str) -> list[str]:
    """Lines of ``text`` worth showing in a transcript.

    Drops blank lines, ``#`` progress bars and bare percentages.
    """
    kept: list[str] = []
    for line in text.splitlines():
        trimmed = line.strip()
        if not trimmed:
            continue
        if set(trimmed) <= {"#", " "}:
            continue
        if _BARE_PERCENT_RE.match(trimmed):
            continue
        if "###" in trimmed:
            continue
        kept.append(line.rstrip())
    return kept


class StreamedOperation:
    """A running package-manager command, observed chunk by chunk.

    Iterate it once to drive the command to completion; ``state``,
    ``progress`` and ``succeeded`` then report the outcome.
    """

    def __init__(self, label: str, stream: CommandStream):
        self.label = label
        self._stream = stream
        self.state = OperationState.IDLE
        self.progress: float | None = None

    @property
    def command(self) -> list[str]:
        return self._stream.command

    @property
    def returncode(self) -> int | None:
        return self._stream.returncode

    @property
    def succeeded(self) -> bool:
        return self.state is OperationState.SUCCEEDED

    def __iter__(self) -> Iterator[OutputChunk]:
        if self.state is not OperationState.IDLE:
            raise RuntimeError(f"Operation {self.label!r} has already been started")
        self.state = OperationState.RUNNING
        logger.info("Started: %s", self.label)
        return self._drive()

    def _drive(self) -> Iterator[OutputChunk]:
        try:
            for text in self._stream:
                progress = parse_progress(text)
                if progress is not None:
                    self.progress = progress
                yield OutputChunk(text=text, progress=progress)
        finally:
            self.state = (
                OperationState.SUCCEEDED if self._stream.returncode == 0
                else OperationState.FAILED
            )
            logger.info(
                "Finished: %s → %s (exit %s)",
                self.label, self.state.value, self._stream.returncode,
            )

    def run(
        self,
        on_output: OutputSink | None = None,
        on_progress: ProgressSink | None = None,
    ) -> bool:
        """Drive to completion, forwarding text and progress to the sinks."""
        for chunk in self:
            if on_output is not None:
                on_output(chunk.text)
            if on_progress is not None and chunk.progress is not None:
                on_progress(chunk.progress)
        return self.succeeded
