"""Batched, durable CSV output."""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Mapping, Sequence

from geocsv.common.errors import WriteError
from geocsv.common.fs import ensure_dir, has_content, sync_file


def output_has_content(path: Path) -> bool:
    """An existing non-empty output means the run only ever appends to it."""
    return has_content(path)


class BatchWriter:
    def flush(
        self,
        path: Path,
        records: Sequence[Mapping[str, str]],
        schema: list[str],
        is_first_write: bool,
    ) -> None:
        """Write one batch and fsync it before returning.

        The first write of a fresh output truncates the file and emits the
        header; every later write appends data rows only.
        """
        if not is_first_write and not records:
            return
        mode = "w" if is_first_write else "a"
        try:
            ensure_dir(path.parent)
            with path.open(mode, encoding="utf-8", newline="") as f:
                writer = csv.DictWriter(f, fieldnames=schema, extrasaction="ignore", restval="")
                if is_first_write:
                    writer.writeheader()
                for row in records:
                    writer.writerow(row)
                sync_file(f)
        except (OSError, csv.Error) as exc:
            raise WriteError(f"Error writing batch to {path}: {exc}") from exc
