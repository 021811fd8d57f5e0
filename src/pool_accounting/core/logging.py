"""Hash-chained audit log for settlement attempts and CLI runs.

Every entry carries the hash of the previous one, so a settlement trail
(which tier ran, what amount was approved, what remained) can be verified
independently after the fact. Entries are mirrored to loguru for humans.
"""

from __future__ import annotations

import hashlib
import json
import os
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import BaseModel, Field


class AuditEntry(BaseModel):
    """A single hash-chained audit entry."""

    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    session_id: str
    sequence: int
    level: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
    previous_hash: str | None = None
    entry_hash: str | None = None

    def compute_hash(self) -> str:
        """Hash of this entry, excluding entry_hash itself."""
        payload = self.model_dump(exclude={"entry_hash"})
        return hashlib.sha256(
            json.dumps(payload, sort_keys=True, default=str).encode()
        ).hexdigest()

    def seal(self) -> AuditEntry:
        """Compute and store the entry hash."""
        self.entry_hash = self.compute_hash()
        return self


_default_handler_removed = False


def _remove_default_handler() -> None:
    """Drop loguru's stock stderr sink so only session handlers print."""
    global _default_handler_removed
    if not _default_handler_removed:
        logger.remove()
        _default_handler_removed = True


class AuditLogger:
    """Append-only, hash-chained JSONL audit log.

    Usage:
        audit = AuditLogger.open_session("repay")
        audit.log_event("settlement_attempt", {"tier": "unlimited"})
        ok, errors = verify_audit_log(audit.path)
    """

    def __init__(self, session_id: str, log_dir: Path, console: bool = True) -> None:
        """Initialize the audit logger.

        Args:
            session_id: Unique identifier for this session.
            log_dir: Directory to store log files.
            console: Also echo entries to stderr through loguru.
        """
        self.session_id = session_id
        self.log_dir = log_dir
        self._previous_hash: str | None = None
        self._sequence = 0

        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.path = self.log_dir / f"{session_id}.jsonl"

        _remove_default_handler()
        self._handler_ids: list[int] = []
        if console:
            self._handler_ids.append(
                logger.add(
                    sys.stderr,
                    format=(
                        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
                        "<level>{level: <8}</level> | "
                        "<cyan>{extra[session_id]}</cyan> | "
                        "{message}"
                    ),
                    level="INFO",
                    filter=lambda record: record["extra"].get("session_id") == self.session_id,
                )
            )
        self._logger = logger.bind(session_id=self.session_id)

    @classmethod
    def open_session(
        cls,
        name: str,
        log_dir: str | Path | None = None,
        console: bool = True,
    ) -> AuditLogger:
        """Open a new audit session.

        Args:
            name: Short name for the session (e.g. "repay", "cli_account").
            log_dir: Directory for logs (default: LOG_DIR env or ./logs).
            console: Also echo entries to stderr.
        """
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        session_id = f"{name}_{stamp}_{str(uuid.uuid4())[:8]}"
        directory = Path(log_dir) if log_dir is not None else Path(os.getenv("LOG_DIR", "logs"))
        return cls(session_id, directory, console=console)

    def close(self) -> None:
        """Detach this session's console handler."""
        for handler_id in self._handler_ids:
            logger.remove(handler_id)
        self._handler_ids.clear()

    def _append(self, level: str, message: str, data: dict[str, Any] | None) -> AuditEntry:
        entry = AuditEntry(
            session_id=self.session_id,
            sequence=self._sequence,
            level=level,
            message=message,
            data=data or {},
            previous_hash=self._previous_hash,
        ).seal()
        with open(self.path, "a") as f:
            f.write(entry.model_dump_json() + "\n")
        self._previous_hash = entry.entry_hash
        self._sequence += 1
        return entry

    def debug(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Record a debug entry."""
        self._append("DEBUG", message, data)
        self._logger.debug(message)

    def info(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Record an info entry."""
        self._append("INFO", message, data)
        self._logger.info(message)

    def warning(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Record a warning entry."""
        self._append("WARNING", message, data)
        self._logger.warning(message)

    def error(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Record an error entry."""
        self._append("ERROR", message, data)
        self._logger.error(message)

    def log_event(self, event_type: str, event_data: dict[str, Any]) -> None:
        """Record a structured event (e.g. 'settlement_attempt')."""
        self._append("EVENT", f"Event: {event_type}", {"event_type": event_type, **event_data})
        self._logger.info(f"EVENT: {event_type}")

    def summary(self) -> dict[str, Any]:
        """Current state of the chain."""
        return {
            "session_id": self.session_id,
            "entry_count": self._sequence,
            "last_hash": self._previous_hash,
            "path": str(self.path),
        }


def verify_audit_log(log_path: Path) -> tuple[bool, list[str]]:
    """Verify the hash chain of an audit log file.

    Returns:
        Tuple of (is_valid, list_of_errors).
    """
    errors: list[str] = []
    previous_hash: str | None = None

    with open(log_path) as f:
        for line_num, line in enumerate(f, 1):
            try:
                entry = AuditEntry.model_validate_json(line)
            except ValueError as e:
                errors.append(f"Line {line_num}: Parse error - {e}")
                continue

            if entry.previous_hash != previous_hash:
                errors.append(
                    f"Line {line_num}: Hash chain broken. "
                    f"Expected previous_hash={previous_hash}, got {entry.previous_hash}"
                )
            computed = entry.compute_hash()
            if entry.entry_hash != computed:
                errors.append(
                    f"Line {line_num}: Entry hash mismatch. "
                    f"Expected {computed}, got {entry.entry_hash}"
                )
            previous_hash = entry.entry_hash

    return len(errors) == 0, errors
