"""Configuration loading and validation."""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from dotenv import load_dotenv

from geocsv.common.constants import (
    API_KEY_ENV_VAR,
    API_KEY_MIN_LENGTH,
    API_KEY_PLACEHOLDER,
    GOOGLE_GEOCODE_URL,
)
from geocsv.common.errors import ConfigError
from geocsv.common.fs import read_yaml
from geocsv.common.schema import validate_run_config

DEFAULTS: dict[str, Any] = {
    "input_csv_path": "input.csv",
    "base_output_csv_path": "output.csv",
    "logs_folder": "logs",
    "address_column_index": 9,
    "request_delay_ms": 200,
    "max_records_to_process": 0,
    "batch_write_size": 10,
    "from_row": 0,
    "geocoder": {
        "endpoint": GOOGLE_GEOCODE_URL,
        "timeout": {"connect": 10.0, "read": 30.0},
        "max_attempts": 1,
    },
}


@dataclass(frozen=True)
class GeocoderSettings:
    endpoint: str
    connect_timeout: float
    read_timeout: float
    max_attempts: int


@dataclass(frozen=True)
class RunConfig:
    """Immutable settings for one run, built once at startup."""

    input_path: Path
    base_output_path: Path
    logs_folder: Path
    address_column_index: int
    request_delay_ms: int
    max_records_to_process: int
    batch_write_size: int
    from_row: int
    geocoder: GeocoderSettings
    api_key: str | None = None

    @property
    def start_index(self) -> int:
        """Zero-based index of the first record to process."""
        return self.from_row - 1 if self.from_row > 0 else 0

    @property
    def output_path(self) -> Path:
        return resumed_output_path(self.base_output_path, self.from_row)

    @property
    def has_usable_api_key(self) -> bool:
        return is_usable_api_key(self.api_key)

    def describe(self) -> dict[str, Any]:
        """Operator-facing view of the effective settings, credential excluded."""
        return {
            "input_csv_path": str(self.input_path),
            "base_output_csv_path": str(self.base_output_path),
            "output_csv_path": str(self.output_path),
            "logs_folder": str(self.logs_folder),
            "address_column_index": self.address_column_index,
            "request_delay_ms": self.request_delay_ms,
            "max_records_to_process": self.max_records_to_process or "all",
            "batch_write_size": self.batch_write_size,
            "from_row": self.from_row,
            "geocoder_endpoint": self.geocoder.endpoint,
        }


def is_usable_api_key(api_key: str | None) -> bool:
    return bool(api_key) and api_key != API_KEY_PLACEHOLDER and len(api_key) >= API_KEY_MIN_LENGTH


def resumed_output_path(base: Path, from_row: int) -> Path:
    if from_row <= 0:
        return base
    suffix = base.suffix or ".csv"
    return base.with_name(f"{base.stem}-from-row-{from_row}{suffix}")


def parse_from_row(value: str | int | None) -> tuple[int, str | None]:
    """Interpret a ``--from-row`` value.

    Returns the 1-based start row (0 means "process everything") and a warning
    when the value was present but unusable.
    """
    if value is None:
        return 0, None
    try:
        parsed = int(str(value).strip())
    except ValueError:
        return 0, f'Invalid --from-row value: "{value}". Processing all rows.'
    if parsed <= 0:
        return 0, f'Invalid --from-row value: "{value}". Processing all rows.'
    return parsed, None


def resolve_api_key(env: Mapping[str, str] | None = None, *, dotenv_path: Path | None = None) -> str | None:
    if env is None:
        # Real environment variables win over .env entries.
        load_dotenv(dotenv_path=dotenv_path, override=False)
        env = os.environ
    value = env.get(API_KEY_ENV_VAR)
    return value.strip() if value else None


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _read_mapping(path: Path) -> dict:
    payload = read_yaml(path)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return payload


def load_config_dict(config_path: Path | None, overlay_path: Path | None = None) -> dict:
    cfg = copy.deepcopy(DEFAULTS)
    if config_path is not None and config_path.exists():
        cfg = _deep_merge(cfg, _read_mapping(config_path))
    if overlay_path is not None and overlay_path.exists():
        cfg = _deep_merge(cfg, _read_mapping(overlay_path))
    return cfg


def build_run_config(cfg: dict, *, api_key: str | None = None, allow_unknown: bool = False) -> RunConfig:
    cfg = validate_run_config(cfg, allow_unknown=allow_unknown)
    geocoder = cfg["geocoder"]
    return RunConfig(
        input_path=Path(cfg["input_csv_path"]),
        base_output_path=Path(cfg["base_output_csv_path"]),
        logs_folder=Path(cfg["logs_folder"]),
        address_column_index=cfg["address_column_index"],
        request_delay_ms=cfg["request_delay_ms"],
        max_records_to_process=cfg["max_records_to_process"],
        batch_write_size=cfg["batch_write_size"],
        from_row=max(cfg["from_row"], 0),
        geocoder=GeocoderSettings(
            endpoint=geocoder["endpoint"],
            connect_timeout=float(geocoder["timeout"]["connect"]),
            read_timeout=float(geocoder["timeout"]["read"]),
            max_attempts=geocoder["max_attempts"],
        ),
        api_key=api_key,
    )


def load_run_config(
    config_path: Path | None,
    *,
    overlay_path: Path | None = None,
    overrides: Mapping[str, Any] | None = None,
    api_key: str | None = None,
    allow_unknown: bool = False,
) -> RunConfig:
    cfg = load_config_dict(config_path, overlay_path)
    if overrides:
        cfg = _deep_merge(cfg, {key: value for key, value in overrides.items() if value is not None})
    return build_run_config(cfg, api_key=api_key, allow_unknown=allow_unknown)
