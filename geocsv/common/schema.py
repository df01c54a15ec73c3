"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from geocsv.common.errors import ConfigError

RUN_CONFIG_KEYS = {
    "input_csv_path",
    "base_output_csv_path",
    "logs_folder",
    "address_column_index",
    "request_delay_ms",
    "max_records_to_process",
    "batch_write_size",
    "from_row",
    "geocoder",
}
GEOCODER_KEYS = {"endpoint", "timeout", "max_attempts"}
TIMEOUT_KEYS = {"connect", "read"}


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_mapping(obj: object, ctx: str) -> None:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")


def _assert_int(value: object, ctx: str, *, minimum: int | None = None) -> None:
    # bool is an int subclass; "true" is never a sensible row count.
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{ctx} must be an integer, got {value!r}")
    if minimum is not None and value < minimum:
        raise ConfigError(f"{ctx} must be >= {minimum}, got {value}")


def _assert_number(value: object, ctx: str) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"{ctx} must be a positive number, got {value!r}")


def _assert_text(value: object, ctx: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{ctx} must be a non-empty string")


def validate_run_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    _assert_mapping(cfg, "run config")
    _assert_required_keys(cfg, RUN_CONFIG_KEYS, "run config")
    _assert_no_unknown_keys(cfg, RUN_CONFIG_KEYS, "run config", allow_unknown)

    for key in ("input_csv_path", "base_output_csv_path", "logs_folder"):
        _assert_text(cfg[key], key)

    _assert_int(cfg["address_column_index"], "address_column_index", minimum=0)
    _assert_int(cfg["batch_write_size"], "batch_write_size", minimum=1)
    # Non-positive values switch these features off.
    _assert_int(cfg["request_delay_ms"], "request_delay_ms")
    _assert_int(cfg["max_records_to_process"], "max_records_to_process")
    _assert_int(cfg["from_row"], "from_row")

    geocoder = cfg["geocoder"]
    _assert_mapping(geocoder, "geocoder")
    _assert_required_keys(geocoder, GEOCODER_KEYS, "geocoder")
    _assert_no_unknown_keys(geocoder, GEOCODER_KEYS, "geocoder", allow_unknown)
    _assert_text(geocoder["endpoint"], "geocoder.endpoint")
    _assert_int(geocoder["max_attempts"], "geocoder.max_attempts", minimum=1)

    timeout = geocoder["timeout"]
    _assert_mapping(timeout, "geocoder.timeout")
    _assert_required_keys(timeout, TIMEOUT_KEYS, "geocoder.timeout")
    _assert_no_unknown_keys(timeout, TIMEOUT_KEYS, "geocoder.timeout", allow_unknown)
    for key in sorted(TIMEOUT_KEYS):
        _assert_number(timeout[key], f"geocoder.timeout.{key}")

    return cfg
