"""
Mock runner — scripted test double for every external command.

Used by the test suite (and by anyone wiring a manager without a real
Homebrew) to simulate tool output without spawning processes.
Responses are keyed by the exact command list; anything unscripted
behaves like a binary that is not installed.
"""

from __future__ import annotations

from devswitch.adapters.base import CommandRunner, CommandStream
from devswitch.core.models.receipt import Receipt


class MockCommandRunner(CommandRunner):
    """Command runner that replays scripted responses."""

    def __init__(
        self,
        paths: dict[str, str] | None = None,
        runner_name: str = "mock",
    ):
        self._name = runner_name
        self._paths: dict[str, str] = dict(paths or {})
        self._responses: dict[tuple[str, ...], Receipt] = {}
        self._streams: dict[tuple[str, ...], tuple[list[str], int]] = {}
        self._call_log: list[list[str]] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[list[str]]:
        """Every command run or streamed, in order."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def calls_starting_with(self, *prefix: str) -> list[list[str]]:
        """Logged commands whose leading arguments equal ``prefix``."""
        n = len(prefix)
        return [c for c in self._call_log if tuple(c[:n]) == prefix]

    # ── Scripting ───────────────────────────────────────────────

    def set_which(self, binary: str, path: str) -> None:
        """Make ``binary`` resolvable through the fake PATH."""
        self._paths[binary] = path

    def set_output(
        self,
        command: list[str],
        stdout: str,
        stderr: str = "",
        returncode: int = 0,
    ) -> None:
        """Script the captured output of a command."""
        if returncode == 0:
            receipt = Receipt.success(self._name, command, stdout=stdout, stderr=stderr)
        else:
            receipt = Receipt.failure(
                self._name,
                command,
                error=stderr or f"Command exited with code {returncode}",
                returncode=returncode,
                stdout=stdout,
                stderr=stderr,
            )
        self._responses[tuple(command)] = receipt

    def set_failure(self, command: list[str], error: str = "Mock failure") -> None:
        """Configure a command to fail to run at all."""
        self._responses[tuple(command)] = Receipt.failure(self._name, command, error=error)

    def set_stream(self, command: list[str], lines: list[str], returncode: int = 0) -> None:
        """Script the streamed output and exit status of a command."""
        self._streams[tuple(command)] = (list(lines), returncode)

    # ── CommandRunner ───────────────────────────────────────────

    def which(self, binary: str) -> str | None:
        return self._paths.get(binary)

    def run(self, command: list[str], *, timeout: int = 30) -> Receipt:
        self._call_log.append(list(command))
        receipt = self._responses.get(tuple(command))
        if receipt is not None:
            return receipt
        return Receipt.failure(
            self._name,
            command,
            error=f"[mock] command not found: {command[0] if command else ''}",
        )

    def stream(self, command: list[str]) -> CommandStream:
        self._call_log.append(list(command))
        scripted = self._streams.get(tuple(command))
        if scripted is None:
            return CommandStream.failed(
                command,
                f"Error: [mock] command not found: {command[0] if command else ''}",
            )
        lines, returncode = scripted
        return CommandStream(command, iter(lines), lambda: returncode)

    def reset(self) -> None:
        """Clear call log and scripted responses."""
        self._call_log.clear()
        self._responses.clear()
        self._streams.clear()
