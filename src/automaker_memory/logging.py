"""JSONL event logging for memory and context selection."""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


@dataclass
class LogEntry:
    """A single log entry."""

    timestamp: str
    event: str
    project: str | None = None
    path: str | None = None
    files: list[str] | None = None
    duration_ms: float | None = None
    success: bool | None = None
    error: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict, excluding None values."""
        data = asdict(self)
        return {k: v for k, v in data.items() if v is not None and v != {} and v != []}


class JSONLLogger:
    """Logger that writes structured logs in JSONL format."""

    def __init__(
        self,
        log_dir: str | Path | None = None,
        filename: str = "memory-events.jsonl",
        max_size_mb: float = 10.0,
    ) -> None:
        if log_dir is None:
            log_dir = Path.home() / ".automaker" / "logs"
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.filename = filename
        self.max_size_bytes = int(max_size_mb * 1024 * 1024)

    @property
    def log_path(self) -> Path:
        """Current log file path."""
        return self.log_dir / self.filename

    def _rotate_if_needed(self) -> None:
        """Rotate log file if it exceeds max size."""
        if not self.log_path.exists():
            return

        if self.log_path.stat().st_size >= self.max_size_bytes:
            timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
            rotated_name = f"{self.log_path.stem}_{timestamp}.jsonl"
            self.log_path.rename(self.log_dir / rotated_name)

    def _write(self, entry: LogEntry) -> None:
        """Write a log entry to the file."""
        self._rotate_if_needed()

        with open(self.log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry.to_dict()) + "\n")

    def log(
        self,
        event: str,
        *,
        project: str | Path | None = None,
        path: str | Path | None = None,
        files: list[str] | None = None,
        duration_ms: float | None = None,
        success: bool | None = None,
        error: str | None = None,
        **extra: Any,
    ) -> None:
        """Log an event."""
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            event=event,
            project=str(project) if project is not None else None,
            path=str(path) if path is not None else None,
            files=files,
            duration_ms=duration_ms,
            success=success,
            error=error,
            extra=extra if extra else {},
        )
        self._write(entry)

    def log_selection(
        self,
        project: str | Path,
        context_files: list[str],
        memory_files: list[str],
        *,
        task_title: str | None = None,
        duration_ms: float | None = None,
    ) -> None:
        """Log which context and memory files were injected for a task."""
        self.log(
            "context_selection",
            project=project,
            files=context_files,
            duration_ms=duration_ms,
            memory_files=memory_files,
            task_title=task_title,
        )

    def log_usage_update(
        self,
        path: str | Path,
        stat: str,
        success: bool,
        *,
        error: str | None = None,
    ) -> None:
        """Log a usage counter increment."""
        self.log(
            "usage_update",
            path=path,
            success=success,
            error=error if not success else None,
            stat=stat,
        )

    def log_learning(
        self,
        path: str | Path,
        category: str,
        learning_type: str,
        *,
        created: bool,
    ) -> None:
        """Log a learning appended to a memory file."""
        self.log(
            "learning_recorded",
            path=path,
            category=category,
            learning_type=learning_type,
            created=created,
        )


# Global logger instance
_logger: JSONLLogger | None = None


def get_logger() -> JSONLLogger:
    """Get the global logger instance."""
    global _logger
    if _logger is None:
        _logger = JSONLLogger()
    return _logger


def configure_logger(log_dir: str | Path | None = None, max_size_mb: float = 10.0) -> JSONLLogger:
    """Configure and return the global logger."""
    global _logger
    _logger = JSONLLogger(log_dir=log_dir, max_size_mb=max_size_mb)
    return _logger


def reset_logger() -> None:
    """Reset the global logger (for testing)."""
    global _logger
    _logger = None
