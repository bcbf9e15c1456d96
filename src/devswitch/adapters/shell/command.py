"""
Subprocess runner — the one place external programs are launched.

Captured runs go through ``subprocess.run``; streamed runs go through
``subprocess.Popen`` with stderr folded into stdout so progress and
errors arrive in the order the tool printed them.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import time

from devswitch.adapters.base import CommandRunner, CommandStream
from devswitch.core.models.receipt import Receipt

logger = logging.getLogger(__name__)


class SubprocessRunner(CommandRunner):
    """Run commands with the inherited environment."""

    @property
    def name(self) -> str:
        return "subprocess"

    def which(self, binary: str) -> str | None:
        return shutil.which(binary)

    def run(self, command: list[str], *, timeout: int = 30) -> Receipt:
        logger.debug("Executing: %s", " ".join(command))
        start = time.monotonic()

        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                tool=self.name,
                command=command,
                error=f"Command timed out after {timeout}s",
                metadata={"timeout": timeout},
            )
        except (OSError, ValueError) as e:
            return Receipt.failure(
                tool=self.name,
                command=command,
                error=f"Command execution error: {e}",
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        if result.returncode == 0:
            return Receipt.success(
                tool=self.name,
                command=command,
                stdout=result.stdout,
                stderr=result.stderr,
                duration_ms=elapsed_ms,
            )
        return Receipt.failure(
            tool=self.name,
            command=command,
            error=result.stderr.strip() or f"Command exited with code {result.returncode}",
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
            duration_ms=elapsed_ms,
        )

    def stream(self, command: list[str]) -> CommandStream:
        logger.debug("Streaming: %s", " ".join(command))
        try:
            # text mode uses universal newlines: "\r" progress redraws
            # arrive as separate lines
            proc = subprocess.Popen(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
        except OSError as e:
            logger.warning("Cannot launch %s: %s", command[0], e)
            return CommandStream.failed(command, f"Error: {e}")

        def _lines():
            assert proc.stdout is not None
            for line in proc.stdout:
                yield line.rstrip("\n")

        def _finish() -> int:
            if proc.stdout:
                proc.stdout.close()
            return proc.wait()

        return CommandStream(command, _lines(), _finish)
