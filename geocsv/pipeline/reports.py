"""Run report aggregation."""

from __future__ import annotations

from pathlib import Path

from geocsv.common.config_loader import RunConfig
from geocsv.common.fs import write_json
from geocsv.geocode.outcomes import OutcomeKind
from geocsv.pipeline.orchestrator import RunPhase, RunState


def run_status(state: RunState) -> str:
    if state.phase is RunPhase.FAILED:
        return "error"
    if state.had_record_failures or state.batches_lost:
        return "partial"
    return "success"


def build_run_summary(state: RunState, config: RunConfig, diagnostics_path: Path | None = None) -> dict:
    return {
        "run_id": state.run_id,
        "started_at": state.started_at,
        "finished_at": state.finished_at,
        "status": run_status(state),
        "phase": state.phase.value,
        "failure_reason": state.failure_reason,
        "input_csv_path": str(config.input_path),
        "output_csv_path": str(state.output_path),
        "diagnostics_log_path": str(diagnostics_path) if diagnostics_path is not None else None,
        "from_row": config.from_row,
        "resumed_existing_output": state.resumed_existing_output,
        "totals": {
            "rows_read": state.rows_read,
            "rows_written": state.rows_written,
            "rows_lost": state.rows_lost,
            "geocoded_count": state.geocoded_count,
            "batches_written": state.batches_written,
            "batches_lost": state.batches_lost,
        },
        "outcomes": {kind.value: state.outcome_counts.get(kind.value, 0) for kind in OutcomeKind},
    }


def write_run_summary(
    state: RunState,
    config: RunConfig,
    diagnostics_path: Path | None = None,
) -> Path:
    summary_path = config.logs_folder / f"{state.run_id}_summary.json"
    write_json(summary_path, build_run_summary(state, config, diagnostics_path))
    return summary_path
