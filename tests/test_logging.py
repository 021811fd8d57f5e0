"""Tests for hash-chained audit logging."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from pool_accounting.core.logging import AuditEntry, AuditLogger, verify_audit_log


class TestAuditEntry:
    """Tests for AuditEntry model."""

    def test_hash_is_deterministic(self) -> None:
        """Should compute a consistent SHA256 hash."""
        entry = AuditEntry(
            session_id="s1",
            sequence=0,
            level="INFO",
            message="Test message",
            timestamp="2024-01-01T00:00:00+00:00",
        )
        assert entry.compute_hash() == entry.compute_hash()
        assert len(entry.compute_hash()) == 64

    def test_seal(self) -> None:
        """Sealing stores the computed hash."""
        entry = AuditEntry(session_id="s1", sequence=0, level="INFO", message="m").seal()
        assert entry.entry_hash == entry.compute_hash()

    def test_hash_covers_data(self) -> None:
        """Changing the payload changes the hash."""
        common = {
            "session_id": "s1",
            "sequence": 0,
            "level": "EVENT",
            "message": "m",
            "timestamp": "2024-01-01T00:00:00+00:00",
        }
        a = AuditEntry(**common, data={"amount": "1000100"})
        b = AuditEntry(**common, data={"amount": "1000101"})
        assert a.compute_hash() != b.compute_hash()


class TestAuditLogger:
    """Tests for AuditLogger."""

    def test_writes_chained_entries(self, temp_log_dir: Path) -> None:
        """Each entry links to the previous entry's hash."""
        audit = AuditLogger("chain", temp_log_dir, console=False)
        audit.info("first")
        audit.warning("second", {"remaining": "500"})
        audit.log_event("settlement_attempt", {"tier": "unlimited"})
        audit.close()

        with open(audit.path) as f:
            entries = [json.loads(line) for line in f]

        assert [e["sequence"] for e in entries] == [0, 1, 2]
        assert entries[0]["previous_hash"] is None
        assert entries[1]["previous_hash"] == entries[0]["entry_hash"]
        assert entries[2]["previous_hash"] == entries[1]["entry_hash"]
        assert entries[2]["data"] == {"event_type": "settlement_attempt", "tier": "unlimited"}

    def test_summary(self, temp_log_dir: Path) -> None:
        """Summary reports the chain head."""
        audit = AuditLogger("summary", temp_log_dir, console=False)
        audit.debug("one")
        audit.error("two")
        summary = audit.summary()
        audit.close()

        assert summary["entry_count"] == 2
        assert summary["last_hash"] is not None
        assert summary["path"].endswith("summary.jsonl")

    def test_open_session(self, temp_log_dir: Path) -> None:
        """Sessions get unique ids under the requested directory."""
        first = AuditLogger.open_session("repay", temp_log_dir, console=False)
        second = AuditLogger.open_session("repay", temp_log_dir, console=False)
        assert first.session_id.startswith("repay_")
        assert first.session_id != second.session_id
        assert first.path.parent == temp_log_dir

    def test_open_session_uses_log_dir_env(self, tmp_path: Path) -> None:
        """Without an explicit directory LOG_DIR is used."""
        audit = AuditLogger.open_session("env", console=False)
        assert audit.log_dir == tmp_path / "logs"

    def test_console_handler_removed_on_close(self, temp_log_dir: Path) -> None:
        """Closing detaches the session's loguru handler."""
        audit = AuditLogger("console", temp_log_dir, console=True)
        audit.info("visible")
        audit.close()
        audit.close()
        assert audit._handler_ids == []

    def test_console_disabled_is_silent(
        self, temp_log_dir: Path, capfd: pytest.CaptureFixture[str]
    ) -> None:
        """Without console output nothing reaches stderr."""
        audit = AuditLogger("quiet", temp_log_dir, console=False)
        audit.info("file only")
        audit.warning("file only")
        audit.log_event("repay_plan", {"amount": 1})
        audit.close()

        assert capfd.readouterr().err == ""
        assert len(audit.path.read_text().splitlines()) == 3

    def test_console_prints_each_entry_once(
        self, temp_log_dir: Path, capfd: pytest.CaptureFixture[str]
    ) -> None:
        """A console session echoes every entry exactly once."""
        audit = AuditLogger("loud", temp_log_dir, console=True)
        audit.info("printed once")
        audit.close()

        err = capfd.readouterr().err
        assert err.count("printed once") == 1
        assert "loud" in err


class TestVerifyAuditLog:
    """Tests for verify_audit_log."""

    def _write_log(self, log_dir: Path) -> Path:
        audit = AuditLogger("verify", log_dir, console=False)
        for i in range(3):
            audit.info(f"entry {i}", {"i": i})
        audit.close()
        return audit.path

    def test_valid_log(self, temp_log_dir: Path) -> None:
        """An untouched log verifies."""
        is_valid, errors = verify_audit_log(self._write_log(temp_log_dir))
        assert is_valid
        assert errors == []

    def test_detects_tampered_entry(self, temp_log_dir: Path) -> None:
        """Editing an entry breaks its hash."""
        path = self._write_log(temp_log_dir)
        lines = path.read_text().splitlines()
        entry = json.loads(lines[1])
        entry["message"] = "rewritten"
        lines[1] = json.dumps(entry)
        path.write_text("\n".join(lines) + "\n")

        is_valid, errors = verify_audit_log(path)
        assert not is_valid
        assert any("Entry hash mismatch" in e for e in errors)

    def test_detects_removed_entry(self, temp_log_dir: Path) -> None:
        """Dropping an entry breaks the chain."""
        path = self._write_log(temp_log_dir)
        lines = path.read_text().splitlines()
        path.write_text("\n".join([lines[0], lines[2]]) + "\n")

        is_valid, errors = verify_audit_log(path)
        assert not is_valid
        assert any("Hash chain broken" in e for e in errors)

    def test_detects_garbage_line(self, temp_log_dir: Path) -> None:
        """Unparseable lines are reported."""
        path = self._write_log(temp_log_dir)
        with open(path, "a") as f:
            f.write("not json\n")

        is_valid, errors = verify_audit_log(path)
        assert not is_valid
        assert any("Parse error" in e for e in errors)
