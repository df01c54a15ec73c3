import re
from datetime import datetime, timezone
from pathlib import Path

from geocsv.geocode.outcomes import GeocodeOutcome, Severity
from geocsv.pipeline import diagnostics
from geocsv.pipeline.diagnostics import DiagnosticsLog, LogEntry, diagnostics_log_path, record_message
from geocsv.pipeline.source import Record

LINE_PATTERN = re.compile(r"^\[\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z\] (INFO|WARN|ERROR|FAIL|FATAL): .+$")


def test_entry_render_format():
    entry = LogEntry(Severity.FAIL, "boom", timestamp="2026-01-02T03:04:05.678Z")
    assert entry.render() == "[2026-01-02T03:04:05.678Z] FAIL: boom"
    assert LINE_PATTERN.match(LogEntry(Severity.INFO, "hello").render())


def test_append_creates_directory_and_appends(tmp_path: Path):
    path = tmp_path / "logs" / "run.log"

    diagnostics.append(path, [LogEntry(Severity.INFO, "one")])
    diagnostics.append(path, [LogEntry(Severity.WARN, "two"), LogEntry(Severity.ERROR, "three")])
    diagnostics.append(path, [])

    lines = path.read_text(encoding="utf-8").splitlines()
    assert [line.split("] ", 1)[1] for line in lines] == ["INFO: one", "WARN: two", "ERROR: three"]


def test_log_buffers_until_flush(tmp_path: Path):
    log = DiagnosticsLog(tmp_path / "run.log")
    log.add(Severity.FAIL, "pending")

    assert not log.path.exists()
    assert log.flush() == 1
    assert log.flush() == 0
    assert "FAIL: pending" in log.path.read_text(encoding="utf-8")
    assert log.entries_written == 1


def test_record_message_embeds_full_row():
    record = Record(ordinal=3, fields={"name": "Bad", "address": "Invalid@@@"})
    message = record_message(record, "Invalid@@@", GeocodeOutcome.not_found("API Status: ZERO_RESULTS."))

    assert message.startswith("[Input Row: 3] Status: API Status: ZERO_RESULTS.")
    assert 'Address: "Invalid@@@"' in message
    assert message.endswith('Record Data: {"name": "Bad", "address": "Invalid@@@"}')

    empty = record_message(Record(ordinal=2, fields={"address": ""}), "", GeocodeOutcome.empty_address())
    assert 'Address: "(empty)"' in empty


def test_log_path_is_timestamped(tmp_path: Path):
    moment = datetime(2026, 10, 19, 8, 30, 0, 123000, tzinfo=timezone.utc)
    path = diagnostics_log_path(tmp_path, moment)
    assert path == tmp_path / "geocsv_2026-10-19T08-30-00-123Z.log"
