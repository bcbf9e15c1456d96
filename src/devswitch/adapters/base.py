"""
Adapter base — the contract between the core and external programs.

The core never calls ``subprocess`` directly. It talks to a
``CommandRunner``, which lets tests substitute a scripted double
(``MockCommandRunner``) for the package manager, the JDK registry
helper, and the toolchain binaries.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Iterator

from devswitch.core.models.receipt import Receipt


class CommandStream:
    """Output of a running command, consumed line by line.

    Finite and one-shot: iterate it once, then read ``returncode``.
    The command's exit status is collected when the last line has been
    read (or the iteration is abandoned).
    """

    def __init__(
        self,
        command: list[str],
        lines: Iterator[str],
        finish: Callable[[], int],
    ) -> None:
        self.command = list(command)
        self._lines = lines
        self._finish = finish
        self._started = False
        self.returncode: int | None = None

    def __iter__(self) -> Iterator[str]:
        if self._started:
            raise RuntimeError("CommandStream can only be consumed once")
        self._started = True
        return self._drain()

    def _drain(self) -> Iterator[str]:
        try:
            yield from self._lines
        finally:
            self.returncode = self._finish()

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def wait(self) -> int:
        """Consume whatever is left and return the exit status."""
        if not self._started:
            for _ in self:
                pass
        assert self.returncode is not None
        return self.returncode

    @classmethod
    def failed(cls, command: list[str], message: str, returncode: int = -1) -> CommandStream:
        """A stream for a command that could not be launched."""
        return cls(command, iter([message]), lambda: returncode)


class CommandRunner(ABC):
    """Abstract base class for command runners.

    Runners NEVER raise for a missing binary, a launch failure, a
    timeout, or a non-zero exit. ``run`` reports through a Receipt;
    ``stream`` reports through the stream's text and ``returncode``.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The runner identifier (e.g., 'subprocess', 'mock')."""

    @abstractmethod
    def which(self, binary: str) -> str | None:
        """Resolve a binary through the inherited ``PATH``."""

    @abstractmethod
    def run(self, command: list[str], *, timeout: int = 30) -> Receipt:
        """Run to completion with captured stdout/stderr."""

    @abstractmethod
    def stream(self, command: list[str]) -> CommandStream:
        """Start the command; combined stdout/stderr arrives lazily."""

    def is_available(self, binary: str) -> bool:
        return self.which(binary) is not None

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
