"""Per-record geocoding loop with batching, pacing, and resume semantics."""

from __future__ import annotations

import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Protocol

from geocsv.common.config_loader import RunConfig
from geocsv.common.errors import IngestError, PipelineError, SchemaError, WriteError
from geocsv.common.fs import write_text_if_empty
from geocsv.common.ids import generate_run_id
from geocsv.common.logging import log_event
from geocsv.common.time_utils import utc_timestamp_iso
from geocsv.geocode.outcomes import GeocodeOutcome, OutcomeKind, Severity, severity_for
from geocsv.pipeline.diagnostics import DiagnosticsLog, diagnostics_log_path, record_message, serialize_record
from geocsv.pipeline.pacer import Pacer
from geocsv.pipeline.source import Record, RecordSource, output_schema, validate_schema
from geocsv.pipeline.writer import BatchWriter, output_has_content

EMPTY_INPUT_NOTE = "Input CSV empty or no headers found."

CONSOLE_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARN: logging.WARNING,
    Severity.ERROR: logging.ERROR,
    Severity.FAIL: logging.ERROR,
    Severity.FATAL: logging.CRITICAL,
}


class Geocoder(Protocol):
    def lookup(self, address: str | None) -> GeocodeOutcome: ...


class RunPhase(str, Enum):
    IDLE = "idle"
    INGESTING = "ingesting"
    PROCESSING = "processing"
    DRAINING = "draining"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RunState:
    run_id: str
    start_index: int
    output_path: Path
    ceiling: int
    phase: RunPhase = RunPhase.IDLE
    failure_reason: str | None = None
    started_at: str = field(default_factory=utc_timestamp_iso)
    finished_at: str | None = None
    header_written: bool = False
    resumed_existing_output: bool = False
    geocoded_count: int = 0
    rows_read: int = 0
    rows_written: int = 0
    rows_lost: int = 0
    batches_written: int = 0
    batches_lost: int = 0
    pending_rows: list[dict[str, str]] = field(default_factory=list)
    pending_ordinals: list[int] = field(default_factory=list)
    outcome_counts: Counter = field(default_factory=Counter)

    @property
    def ceiling_reached(self) -> bool:
        return self.ceiling > 0 and self.geocoded_count >= self.ceiling

    @property
    def had_record_failures(self) -> bool:
        failed_kinds = (
            OutcomeKind.KEY_MISSING,
            OutcomeKind.NOT_FOUND,
            OutcomeKind.RATE_LIMITED,
            OutcomeKind.API_ERROR,
            OutcomeKind.TRANSPORT_ERROR,
        )
        return any(self.outcome_counts[kind.value] for kind in failed_kinds)


class Orchestrator:
    """Owns one run: its state, its pending batches, and its termination."""

    def __init__(
        self,
        config: RunConfig,
        client: Geocoder,
        *,
        diagnostics: DiagnosticsLog | None = None,
        writer: BatchWriter | None = None,
        pacer: Pacer | None = None,
        logger: logging.Logger | None = None,
        run_id: str | None = None,
    ) -> None:
        self.config = config
        self.client = client
        self.diagnostics = diagnostics or DiagnosticsLog(diagnostics_log_path(config.logs_folder))
        self.writer = writer or BatchWriter()
        self.pacer = pacer or Pacer()
        self.logger = logger or logging.getLogger(__name__)
        self.state = RunState(
            run_id=run_id or generate_run_id(),
            start_index=config.start_index,
            output_path=config.output_path,
            ceiling=max(config.max_records_to_process, 0),
        )
        self._schema: list[str] = []
        self._address_field = ""

    def _note(self, severity: Severity, message: str, **event_fields) -> None:
        """Write a lifecycle entry to the diagnostics log and the console."""
        log_event(
            self.logger,
            message,
            level=CONSOLE_LEVELS[severity],
            run_id=self.state.run_id,
            severity=severity.value,
            **event_fields,
        )
        try:
            self.diagnostics.write_now(severity, message)
        except WriteError as exc:
            log_event(
                self.logger,
                str(exc),
                level=logging.ERROR,
                run_id=self.state.run_id,
                event="DIAGNOSTICS_WRITE_FAIL",
                error_code=exc.error_code,
            )

    def _fail(self, exc: PipelineError) -> RunState:
        state = self.state
        state.phase = RunPhase.FAILED
        state.failure_reason = exc.error_code
        self._note(Severity.FATAL, str(exc), event="RUN_FAIL", status="error", error_code=exc.error_code)
        try:
            write_text_if_empty(state.output_path, str(exc))
        except OSError as write_exc:
            log_event(
                self.logger,
                f"Additionally, failed to write error to output file path: {write_exc}",
                level=logging.ERROR,
                run_id=state.run_id,
                event="RUN_FAIL",
                error_code=exc.error_code,
            )
        return state

    def run(self) -> RunState:
        state = self.state
        config = self.config
        state.phase = RunPhase.INGESTING
        self._note(Severity.INFO, f"Run {state.run_id} started.", event="RUN_START", status="ok")
        self._note(
            Severity.INFO,
            "Effective configuration: " + ", ".join(f"{k}={v}" for k, v in config.describe().items()),
            event="RUN_CONFIG",
        )
        if config.from_row > 0:
            self._note(
                Severity.INFO,
                f"Processing will start from input row: {config.from_row}. Output: {state.output_path}",
                event="RESUME_FROM_ROW",
            )
        else:
            self._note(Severity.INFO, f"Processing all rows. Output: {state.output_path}", event="RESUME_FROM_ROW")
        if not config.has_usable_api_key:
            self._note(
                Severity.WARN,
                "Google API key is not configured; every record will be reported as API_KEY_MISSING.",
                event="KEY_MISSING",
                status="warn",
            )

        try:
            with RecordSource(config.input_path) as source:
                self._ingest(source)
                if state.phase is RunPhase.INGESTING:
                    self._process(source)
        except (IngestError, SchemaError) as exc:
            self._fail(exc)
        finally:
            state.finished_at = utc_timestamp_iso()

        if state.phase is not RunPhase.FAILED:
            state.phase = RunPhase.DONE
            self._note(
                Severity.INFO,
                f'Processing loop finished. Output saved to "{state.output_path}". '
                f"Rows read from input: {state.rows_read}. "
                f"Records geocoded in this run: {state.geocoded_count}.",
                event="RUN_END",
                status="ok",
                rows_in=state.rows_read,
                rows_out=state.rows_written,
            )
        return state

    def _ingest(self, source: RecordSource) -> None:
        state = self.state
        if source.is_empty:
            self._note(
                Severity.WARN,
                "Input CSV appears to be empty or no headers were found. Ensure CSV is valid.",
                event="INPUT_EMPTY",
                status="warn",
            )
            try:
                write_text_if_empty(state.output_path, EMPTY_INPUT_NOTE)
            except OSError as exc:
                self._note(Severity.ERROR, f"Error writing empty-input note: {exc}", event="INPUT_EMPTY")
            state.phase = RunPhase.DONE
            return

        self._note(Severity.INFO, f"Detected headers: {', '.join(source.schema)}", event="HEADERS")
        self._schema = output_schema(source.schema)

        if not source.has_rows:
            self._write_header_only()
            state.phase = RunPhase.DONE
            return

        address_field = validate_schema(source.schema, self.config.address_column_index)
        self._address_field = address_field
        self._note(
            Severity.INFO,
            f'Using column "{address_field}" (index {self.config.address_column_index}) for addresses.',
            event="ADDRESS_COLUMN",
        )

        if output_has_content(state.output_path):
            state.header_written = True
            state.resumed_existing_output = True
            self._note(
                Severity.INFO,
                f"Output file {state.output_path} exists and is not empty. "
                "Assuming headers are present. Will append new data.",
                event="OUTPUT_APPEND",
            )
        else:
            self._note(
                Severity.INFO,
                f"Output file {state.output_path} does not exist or is empty. "
                "Headers will be written with the first batch.",
                event="OUTPUT_CREATE",
            )

    def _write_header_only(self) -> None:
        state = self.state
        if output_has_content(state.output_path):
            self._note(
                Severity.INFO,
                f"Input CSV has headers but no data rows. Keeping existing output {state.output_path}.",
                event="INPUT_HEADER_ONLY",
            )
            return
        self._note(
            Severity.INFO,
            "Input CSV has headers but no data rows. Writing output with new headers and no data.",
            event="INPUT_HEADER_ONLY",
        )
        try:
            self.writer.flush(state.output_path, [], self._schema, True)
            state.header_written = True
        except WriteError as exc:
            self._note(Severity.ERROR, f"Error writing CSV with headers only: {exc}", event="BATCH_WRITE_FAIL")

    def _process(self, source: RecordSource) -> None:
        state = self.state
        config = self.config
        state.phase = RunPhase.PROCESSING
        self._note(
            Severity.INFO,
            f"Starting geocoding. Will process rows from input index {state.start_index} onwards.",
            event="PROCESSING_START",
        )

        try:
            for record, is_last in source.records():
                state.rows_read = record.ordinal
                if record.ordinal <= state.start_index:
                    continue

                outcome, counted = self._handle_record(record)
                ceiling_hit = counted and state.ceiling_reached

                if len(state.pending_rows) >= config.batch_write_size or is_last or ceiling_hit:
                    self._flush_batch()

                if ceiling_hit:
                    state.phase = RunPhase.DRAINING
                    self._note(
                        Severity.INFO,
                        f"Record ceiling ({state.ceiling}) hit. Ending geocoding for this run.",
                        event="CEILING_HIT",
                    )
                    break

                self.pacer.wait_if_needed(outcome.is_success, is_last, config.request_delay_ms)
        except IngestError:
            # Flush what was processed before the read error.
            self._flush_batch()
            raise

    def _lookup(self, record: Record, address: str) -> GeocodeOutcome:
        started = time.monotonic()
        try:
            return self.client.lookup(address)
        except Exception as exc:
            return GeocodeOutcome.transport_error(
                f'Geocoding function threw an error for address "{address}" '
                f"(input row {record.ordinal}): {exc}"
            )
        finally:
            log_event(
                self.logger,
                "lookup finished",
                level=logging.DEBUG,
                run_id=self.state.run_id,
                event="LOOKUP",
                ordinal=record.ordinal,
                duration_ms=int((time.monotonic() - started) * 1000),
            )

    def _handle_record(self, record: Record) -> tuple[GeocodeOutcome, bool]:
        """Classify one record and queue its output row and diagnostics."""
        state = self.state
        address = record.get(self._address_field)
        counted = False

        if state.ceiling_reached:
            outcome = GeocodeOutcome.ceiling_skipped(state.ceiling)
        else:
            outcome = self._lookup(record, address)
            if address.strip():
                state.geocoded_count += 1
                counted = True

        state.outcome_counts[outcome.kind.value] += 1
        severity = severity_for(outcome)
        if severity is not None:
            message = record_message(record, address, outcome)
            self.diagnostics.add(severity, message)
            if severity is Severity.FAIL:
                log_event(
                    self.logger,
                    message,
                    level=logging.ERROR,
                    run_id=state.run_id,
                    event="RECORD_FAIL",
                    status="error",
                    ordinal=record.ordinal,
                    outcome=outcome.kind.value,
                    severity=severity.value,
                    record=serialize_record(record),
                )
            elif severity is Severity.INFO:
                log_event(
                    self.logger,
                    f"Input row {record.ordinal}: Address field is empty or invalid. Skipping geocoding for this record.",
                    level=logging.WARNING,
                    run_id=state.run_id,
                    event="RECORD_SKIP",
                    ordinal=record.ordinal,
                    outcome=outcome.kind.value,
                )

        lat, lon = outcome.coordinates()
        state.pending_rows.append(record.with_coordinates(lat, lon))
        state.pending_ordinals.append(record.ordinal)
        return outcome, counted

    def _flush_batch(self) -> None:
        state = self.state
        if not state.pending_rows:
            return
        rows = state.pending_rows
        ordinals = state.pending_ordinals
        state.pending_rows = []
        state.pending_ordinals = []
        first_write = not state.header_written

        try:
            self.writer.flush(state.output_path, rows, self._schema, first_write)
        except WriteError as exc:
            state.batches_lost += 1
            state.rows_lost += len(rows)
            self._note(
                Severity.ERROR,
                f"Error writing batch to CSV (input rows {ordinals[0]}-{ordinals[-1]}): {exc}. "
                "Data in this batch may be lost.",
                event="BATCH_WRITE_FAIL",
                status="error",
                error_code=exc.error_code,
            )
        else:
            state.header_written = True
            state.batches_written += 1
            state.rows_written += len(rows)
            log_event(
                self.logger,
                f"Wrote batch of {len(rows)} rows to CSV. Input rows up to {ordinals[-1]}.",
                run_id=state.run_id,
                event="BATCH_WRITTEN",
                status="ok",
                ordinal=ordinals[-1],
                rows_out=len(rows),
            )

        try:
            self.diagnostics.flush()
        except WriteError as exc:
            log_event(
                self.logger,
                str(exc),
                level=logging.ERROR,
                run_id=state.run_id,
                event="DIAGNOSTICS_WRITE_FAIL",
                error_code=exc.error_code,
            )


def run_pipeline(config: RunConfig, client: Geocoder, **kwargs) -> RunState:
    return Orchestrator(config, client, **kwargs).run()
