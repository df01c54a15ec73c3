"""Append-only diagnostics log with per-batch durable flushes."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from geocsv.common.constants import DIAGNOSTICS_LOG_PREFIX
from geocsv.common.errors import WriteError
from geocsv.common.fs import append_text_durable
from geocsv.common.time_utils import file_friendly_timestamp, utc_timestamp_iso
from geocsv.geocode.outcomes import GeocodeOutcome, Severity
from geocsv.pipeline.source import Record


@dataclass(frozen=True)
class LogEntry:
    severity: Severity
    message: str
    timestamp: str = field(default_factory=utc_timestamp_iso)

    def render(self) -> str:
        return f"[{self.timestamp}] {self.severity.value}: {self.message}"


def diagnostics_log_path(logs_folder: Path, started_at=None) -> Path:
    return logs_folder / f"{DIAGNOSTICS_LOG_PREFIX}_{file_friendly_timestamp(started_at)}.log"


def serialize_record(record: Record) -> str:
    return json.dumps(record.fields, ensure_ascii=False)


def record_message(record: Record, address: str, outcome: GeocodeOutcome) -> str:
    shown = address if address and address.strip() else "(empty)"
    return (
        f"[Input Row: {record.ordinal}] Status: {outcome.detail} "
        f'Address: "{shown}". Record Data: {serialize_record(record)}'
    )


def append(path: Path, entries: Iterable[LogEntry]) -> None:
    lines = [entry.render() for entry in entries]
    if not lines:
        return
    try:
        append_text_durable(path, "\n".join(lines) + "\n")
    except OSError as exc:
        raise WriteError(f"Error appending to log file {path}: {exc}") from exc


class DiagnosticsLog:
    """Buffers record entries until the matching output batch is on disk."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.pending: list[LogEntry] = []
        self.entries_written = 0

    def add(self, severity: Severity, message: str) -> LogEntry:
        entry = LogEntry(severity, message)
        self.pending.append(entry)
        return entry

    def write_now(self, severity: Severity, message: str) -> LogEntry:
        entry = LogEntry(severity, message)
        append(self.path, [entry])
        self.entries_written += 1
        return entry

    def flush(self) -> int:
        if not self.pending:
            return 0
        batch = self.pending
        append(self.path, batch)
        self.pending = []
        self.entries_written += len(batch)
        return len(batch)
