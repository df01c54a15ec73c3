from __future__ import annotations

import csv
import logging
from pathlib import Path

import pytest

from geocsv.common.config_loader import load_run_config
from geocsv.geocode.outcomes import GeocodeOutcome
from geocsv.pipeline.diagnostics import DiagnosticsLog
from geocsv.pipeline.orchestrator import run_pipeline
from geocsv.pipeline.pacer import Pacer

ADDRESSES = ["1 High St", "", "3 Low Rd", "missing", "5 Mill Ln", "6 Quay", "7 Dock Rd"]


class DeterministicGeocoder:
    def lookup(self, address):
        if not address or not address.strip():
            return GeocodeOutcome.empty_address()
        if address == "missing":
            return GeocodeOutcome.not_found("API Status: ZERO_RESULTS. Details: No additional error message.")
        number = float(address.split()[0])
        return GeocodeOutcome.success(number, -number)


def _run(workdir: Path, input_path: Path, **overrides) -> Path:
    config = load_run_config(
        None,
        overrides={
            "input_csv_path": str(input_path),
            "base_output_csv_path": str(workdir / "out.csv"),
            "logs_folder": str(workdir / "logs"),
            "address_column_index": 1,
            "request_delay_ms": 0,
            "batch_write_size": 2,
            **overrides,
        },
        api_key="test-key-0123456789",
    )
    run_pipeline(
        config,
        DeterministicGeocoder(),
        diagnostics=DiagnosticsLog(workdir / "logs" / "diagnostics.log"),
        pacer=Pacer(sleep=lambda _seconds: None),
        logger=logging.getLogger("geocsv.regression"),
    )
    return config.output_path


def _data_rows(path: Path) -> list[list[str]]:
    with path.open("r", encoding="utf-8", newline="") as f:
        rows = list(csv.reader(f))
    assert rows[0] == ["ordinal", "address", "Latitude", "Longitude"]
    return rows[1:]


@pytest.mark.regression
def test_split_run_matches_single_run(tmp_path: Path):
    input_path = tmp_path / "in.csv"
    lines = ["ordinal,address"] + [f'{i},"{address}"' for i, address in enumerate(ADDRESSES, start=1)]
    input_path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    single = _data_rows(_run(tmp_path / "single", input_path))

    # The first run stops after three geocoding attempts (rows 1-4, row 2 is empty).
    first = _data_rows(_run(tmp_path / "split", input_path, max_records_to_process=3))
    resumed_from = len(first) + 1
    second_path = _run(tmp_path / "split", input_path, from_row=resumed_from)
    second = _data_rows(second_path)

    assert second_path.name == f"out-from-row-{resumed_from}.csv"
    assert [row[0] for row in first] == ["1", "2", "3", "4"]
    assert first + second == single
    assert len(single) == len(ADDRESSES)
