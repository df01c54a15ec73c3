import os
from pathlib import Path

import pytest

from geocsv.common.config_loader import (
    load_run_config,
    parse_from_row,
    resolve_api_key,
    resumed_output_path,
)
from geocsv.common.errors import ConfigError


def test_load_run_config_from_repo_config_dir():
    config = load_run_config(Path("config/default.yml"))

    assert config.address_column_index == 9
    assert config.batch_write_size == 10
    assert config.request_delay_ms == 200
    assert config.max_records_to_process == 0
    assert config.geocoder.endpoint.startswith("https://maps.googleapis.com/")
    assert config.geocoder.max_attempts == 1


def test_missing_config_file_uses_defaults(tmp_path: Path):
    config = load_run_config(tmp_path / "absent.yml")

    assert config.input_path == Path("input.csv")
    assert config.output_path == Path("output.csv")
    assert config.logs_folder == Path("logs")


def test_overlay_and_overrides_are_merged(tmp_path: Path):
    base = tmp_path / "base.yml"
    overlay = tmp_path / "overlay.yml"
    base.write_text(
        """input_csv_path: data/in.csv
base_output_csv_path: data/out.csv
batch_write_size: 5
geocoder:
  timeout:
    read: 60
""",
        encoding="utf-8",
    )
    overlay.write_text(
        """batch_write_size: 25
geocoder:
  max_attempts: 3
""",
        encoding="utf-8",
    )

    config = load_run_config(base, overlay_path=overlay, overrides={"input_csv_path": "other.csv", "from_row": None})

    assert config.input_path == Path("other.csv")
    assert config.batch_write_size == 25
    assert config.geocoder.read_timeout == 60.0
    assert config.geocoder.connect_timeout == 10.0
    assert config.geocoder.max_attempts == 3


def test_empty_overlay_file_is_ignored(tmp_path: Path):
    overlay = tmp_path / "overlay.yml"
    overlay.write_text("", encoding="utf-8")

    config = load_run_config(Path("config/default.yml"), overlay_path=overlay)

    assert config.batch_write_size == 10


def test_non_mapping_overlay_is_rejected(tmp_path: Path):
    overlay = tmp_path / "overlay.yml"
    overlay.write_text("- not\n- a\n- mapping\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_run_config(Path("config/default.yml"), overlay_path=overlay)


@pytest.mark.parametrize(
    "bad",
    [
        {"batch_write_size": 0},
        {"address_column_index": -1},
        {"request_delay_ms": "fast"},
        {"max_records_to_process": True},
        {"geocoder": {"max_attempts": 0}},
        {"geocoder": {"timeout": {"read": 0}}},
        {"surprise": 1},
    ],
)
def test_invalid_values_raise_config_error(tmp_path: Path, bad: dict):
    with pytest.raises(ConfigError):
        load_run_config(tmp_path / "absent.yml", overrides=bad)


def test_unknown_keys_allowed_when_requested(tmp_path: Path):
    config = load_run_config(tmp_path / "absent.yml", overrides={"surprise": 1}, allow_unknown=True)
    assert config.batch_write_size == 10


def test_resumed_output_path_suffix():
    assert resumed_output_path(Path("out/result.csv"), 0) == Path("out/result.csv")
    assert resumed_output_path(Path("out/result.csv"), 50) == Path("out/result-from-row-50.csv")
    assert resumed_output_path(Path("out/result"), 7) == Path("out/result-from-row-7.csv")


def test_start_index_and_output_path(tmp_path: Path):
    config = load_run_config(tmp_path / "absent.yml", overrides={"from_row": 101})

    assert config.start_index == 100
    assert config.output_path == Path("output-from-row-101.csv")


def test_parse_from_row():
    assert parse_from_row(None) == (0, None)
    assert parse_from_row("101") == (101, None)
    value, warning = parse_from_row("abc")
    assert value == 0
    assert 'Invalid --from-row value: "abc"' in warning
    assert parse_from_row("0")[0] == 0
    assert parse_from_row("0")[1] is not None


def test_resolve_api_key_from_mapping():
    assert resolve_api_key({"GOOGLE_API_KEY": "  abcdefghijkl  "}) == "abcdefghijkl"
    assert resolve_api_key({}) is None


def test_resolve_api_key_reads_dotenv(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    dotenv = tmp_path / ".env"
    dotenv.write_text("GOOGLE_API_KEY=from-dotenv-0123456789\n", encoding="utf-8")

    try:
        assert resolve_api_key(dotenv_path=dotenv) == "from-dotenv-0123456789"
    finally:
        os.environ.pop("GOOGLE_API_KEY", None)


def test_describe_hides_credential(tmp_path: Path):
    config = load_run_config(tmp_path / "absent.yml", api_key="secret-key-0123456789")

    assert config.has_usable_api_key
    assert "secret-key-0123456789" not in str(config.describe())
