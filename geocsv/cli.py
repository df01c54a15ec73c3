"""CLI entrypoint for batch geocoding of CSV addresses."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from geocsv.common.config_loader import load_run_config, parse_from_row, resolve_api_key
from geocsv.common.constants import DEFAULT_CONFIG_PATH, EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS
from geocsv.common.errors import PipelineError
from geocsv.common.ids import generate_run_id
from geocsv.common.logging import build_logger, close_logger, log_event
from geocsv.geocode.client import GeocodeClient
from geocsv.geocode.outcomes import Severity
from geocsv.pipeline.diagnostics import DiagnosticsLog, diagnostics_log_path
from geocsv.pipeline.orchestrator import RunPhase, run_pipeline
from geocsv.pipeline.reports import run_status, write_run_summary


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="geocsv",
        description=__doc__,
        epilog="The Google API key is read from GOOGLE_API_KEY (a .env file is honoured).",
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH)
    parser.add_argument("--overlay-config", default=None)
    parser.add_argument("--input", default=None, help="Override input_csv_path.")
    parser.add_argument("--output", default=None, help="Override base_output_csv_path.")
    parser.add_argument(
        "--from-row",
        default=None,
        help="1-based input row to start from; output gets a -from-row-N suffix.",
    )
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARN", "ERROR"])
    return parser.parse_args(argv)


def run_command(args: argparse.Namespace, *, client=None, env=None) -> int:
    run_id = args.run_id or generate_run_id()
    from_row, from_row_warning = parse_from_row(args.from_row)

    overrides = {
        "input_csv_path": args.input,
        "base_output_csv_path": args.output,
    }
    if args.from_row is not None:
        overrides["from_row"] = from_row

    config = load_run_config(
        Path(args.config),
        overlay_path=Path(args.overlay_config) if args.overlay_config else None,
        overrides=overrides,
        api_key=resolve_api_key(env),
    )

    logger = build_logger(run_id, log_dir=config.logs_folder, level=args.log_level)
    diagnostics = DiagnosticsLog(diagnostics_log_path(config.logs_folder))
    log_event(logger, f"Logging to: {diagnostics.path}", run_id=run_id, event="RUN_START", status="ok")
    if from_row_warning:
        log_event(logger, from_row_warning, level=logging.WARNING, run_id=run_id, event="FROM_ROW_INVALID", status="warn")
        diagnostics.write_now(Severity.WARN, from_row_warning)

    owns_client = client is None
    client = client or GeocodeClient.from_settings(config.api_key, config.geocoder)
    try:
        state = run_pipeline(config, client, diagnostics=diagnostics, logger=logger, run_id=run_id)
    finally:
        if owns_client:
            client.close()

    summary_path = write_run_summary(state, config, diagnostics.path)
    log_event(
        logger,
        f"Run summary written to {summary_path}",
        run_id=run_id,
        event="RUN_SUMMARY",
        status=run_status(state),
        rows_in=state.rows_read,
        rows_out=state.rows_written,
    )
    close_logger(logger)

    if state.phase is RunPhase.FAILED:
        return EXIT_HARD_FAIL
    if state.had_record_failures or state.batches_lost:
        return EXIT_PARTIAL
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    try:
        return run_command(args)
    except PipelineError as exc:
        print(f"[FATAL] {exc}", file=sys.stderr)
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
