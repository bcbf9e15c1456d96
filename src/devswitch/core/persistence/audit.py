"""
Audit ledger — append-only history of mutating operations.

Every switch, install and uninstall appends one line to
``<config_dir>/audit.ndjson``. The ledger is never rewritten; a corrupt
line is skipped on read instead of failing the whole history.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

OperationType = Literal["switch", "install", "uninstall"]


class AuditEntry(BaseModel):
    """A single audit log entry."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    operation_type: OperationType
    ecosystem: str

    # What was touched: an install root, or a formula for install
    target: str = ""
    version: str = ""

    status: Literal["ok", "failed"] = "ok"
    duration_ms: int = 0
    errors: list[str] = Field(default_factory=list)

    context: dict[str, Any] = Field(default_factory=dict)


class AuditWriter:
    """Append-only ledger writer.

    Write failures are logged, never raised: a missing history line
    must not turn a successful switch into a failed one.
    """

    def __init__(self, path: Path):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> None:
        line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False) + "\n"
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
            logger.debug("Audit entry written: %s %s", entry.operation_type, entry.ecosystem)
        except OSError as e:
            logger.error("Failed to write audit entry: %s", e)

    def read_all(self) -> list[AuditEntry]:
        """All entries, oldest first."""
        if not self._path.is_file():
            return []

        entries: list[AuditEntry] = []
        try:
            with self._path.open("r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(AuditEntry.model_validate(json.loads(line)))
                    except (json.JSONDecodeError, ValidationError) as e:
                        logger.warning("Skipping corrupt audit entry at line %d: %s", line_num, e)
        except OSError as e:
            logger.error("Failed to read audit ledger: %s", e)

        return entries

    def read_recent(self, n: int = 20) -> list[AuditEntry]:
        """The most recent ``n`` entries, oldest first."""
        if n <= 0:
            return []
        return self.read_all()[-n:]
