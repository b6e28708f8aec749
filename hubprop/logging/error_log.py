from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime
from pathlib import Path

from hubprop.models.error_record import ErrorRecord

"""Per-run issue file for rows that were kept but degraded (e.g. a broken
Options cell turned into ``options = []``).

Issues stay in memory during the run. ``flush()`` appends them as JSON Lines
to ``logs/errors-<UTC run start>.log``. The file only exists when something
was recorded.
"""

__all__ = [
    "ErrorLogBuffer",
    "OPTIONS_DECODE_ERROR",
]

OPTIONS_DECODE_ERROR = "OPTIONS_DECODE_ERROR"

DEFAULT_LOGS_DIR = Path("logs")


class ErrorLogBuffer:
    """Collects ErrorRecord entries for one CLI run / upload session."""

    def __init__(self, logs_dir: Path | None = None) -> None:
        self.logs_dir = logs_dir or DEFAULT_LOGS_DIR
        self.started_at = datetime.now(UTC)
        self._pending: list[ErrorRecord] = []

    @property
    def file_path(self) -> Path:
        return self.logs_dir / f"errors-{self.started_at:%Y%m%d-%H%M%S}.log"

    @property
    def records(self) -> list[ErrorRecord]:
        return list(self._pending)

    def __len__(self) -> int:
        return len(self._pending)

    def append(self, record: ErrorRecord) -> None:
        self._pending.append(record)

    def add(self, source: str, row: int, error_type: str, message: str) -> ErrorRecord:
        record = ErrorRecord.create(source, row, error_type, message)
        self._pending.append(record)
        return record

    def counts(self) -> Counter[str]:
        """Pending issues per error_type."""
        return Counter(r.error_type for r in self._pending)

    def flush(self) -> Path | None:
        if not self._pending:
            return None
        self.logs_dir.mkdir(parents=True, exist_ok=True)
        lines = "".join(r.to_json_line() + "\n" for r in self._pending)
        with self.file_path.open("a", encoding="utf-8") as f:
            f.write(lines)
        self._pending = []
        return self.file_path
