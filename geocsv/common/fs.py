"""Filesystem helpers."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import IO


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def read_yaml(path: Path):
    import yaml

    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def write_json(path: Path, payload) -> None:
    ensure_dir(path.parent)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2, sort_keys=True)
        f.write("\n")


def has_content(path: Path) -> bool:
    """True when ``path`` is an existing file with at least one byte."""
    try:
        return path.is_file() and path.stat().st_size > 0
    except OSError:
        return False


def sync_file(handle: IO) -> None:
    """Push buffered writes through the OS cache to stable storage."""
    handle.flush()
    os.fsync(handle.fileno())


def append_text_durable(path: Path, text: str) -> None:
    ensure_dir(path.parent)
    with path.open("a", encoding="utf-8", newline="") as f:
        f.write(text)
        sync_file(f)


def write_text_if_empty(path: Path, text: str) -> bool:
    """Write ``text`` to ``path`` unless it already holds data.

    Returns whether anything was written. Used for best-effort failure notes
    that must never clobber earlier partial results.
    """
    if has_content(path):
        return False
    ensure_dir(path.parent)
    with path.open("w", encoding="utf-8", newline="") as f:
        f.write(text)
        sync_file(f)
    return True
