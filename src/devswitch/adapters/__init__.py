"""Adapters — bindings for external programs and the filesystem.

Public re-exports for convenient access.
"""

from devswitch.adapters.base import CommandRunner, CommandStream
from devswitch.adapters.mock import MockCommandRunner
from devswitch.adapters.shell.command import SubprocessRunner
from devswitch.adapters.shell.filesystem import FilesystemProbe

__all__ = [
    "CommandRunner",
    "CommandStream",
    "FilesystemProbe",
    "MockCommandRunner",
    "SubprocessRunner",
]
