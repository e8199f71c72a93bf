"""Append-only ledger of merge, pull and push operations."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from repobridge.core.log import logger


class SyncRecord(BaseModel):
    """Provenance of one push to a destination repository."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    operation: Literal["merge", "pull", "push"]
    source: str
    destination: str
    branch: str | None = None
    files_count: int = 0
    commit_id: str | None = None
    strategy: str | None = None
    status: Literal["success", "failed"] = "success"
    error_message: str | None = None


def append_record(path: Path, record: SyncRecord) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        f.write(record.model_dump_json() + "\n")
    logger.debug(
        "Recorded sync history",
        file=str(path),
        operation=record.operation,
        status=record.status,
    )


def read_history(path: Path) -> list[SyncRecord]:
    """All records in file order; a missing file is an empty history."""
    if not path.is_file():
        return []
    with open(path, encoding="utf-8") as f:
        return [
            SyncRecord.model_validate_json(line)
            for line in f
            if line.strip()
        ]
