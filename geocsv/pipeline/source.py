"""CSV record source with header capture and streaming reads."""

from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import IO, Iterator

from geocsv.common.constants import LATITUDE_FIELD, LONGITUDE_FIELD
from geocsv.common.errors import IngestError, SchemaError


@dataclass(frozen=True)
class Record:
    ordinal: int
    fields: dict[str, str]

    def get(self, name: str) -> str:
        return self.fields.get(name, "")

    def with_coordinates(self, lat: str, lon: str) -> dict[str, str]:
        out = dict(self.fields)
        out[LATITUDE_FIELD] = lat
        out[LONGITUDE_FIELD] = lon
        return out


def output_schema(schema: list[str]) -> list[str]:
    kept = [name for name in schema if name.strip().lower() not in ("latitude", "longitude")]
    return [*kept, LATITUDE_FIELD, LONGITUDE_FIELD]


def validate_schema(schema: list[str], address_column_index: int) -> str:
    """Return the address column name or raise when the header is too narrow."""
    if len(schema) <= address_column_index:
        raise SchemaError(
            "The CSV file does not have enough columns. "
            f"Expected at least {address_column_index + 1} for address, found {len(schema)}."
        )
    return schema[address_column_index]


class RecordSource:
    """Reads the header eagerly and streams records lazily.

    One record is read ahead so callers learn about the last record of the
    input while handling it, and whether the input has any rows at all before
    the first one is processed.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self.schema: list[str] = []
        self.rows_read = 0
        self._handle: IO[str] | None = None
        self._reader: Iterator[list[str]] | None = None
        self._pending: list[str] | None = None

    def open(self) -> "RecordSource":
        try:
            self._handle = self.path.open("r", encoding="utf-8-sig", newline="")
            self._reader = csv.reader(self._handle)
            header = next(self._reader, None)
            self.schema = list(header) if header and any(h.strip() for h in header) else []
            self._pending = self._next_row()
        except (OSError, UnicodeDecodeError, csv.Error) as exc:
            self.close()
            raise IngestError(f'Error reading input CSV file "{self.path}": {exc}') from exc
        return self

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def __enter__(self) -> "RecordSource":
        return self.open()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def is_empty(self) -> bool:
        return not self.schema and self._pending is None

    @property
    def has_rows(self) -> bool:
        return self._pending is not None

    def _next_row(self) -> list[str] | None:
        for row in self._reader:
            # Only a truly empty line carries no record.
            if not row:
                continue
            return row
        return None

    def _to_record(self, row: list[str]) -> Record:
        self.rows_read += 1
        padded = list(row) + [""] * (len(self.schema) - len(row))
        return Record(ordinal=self.rows_read, fields=dict(zip(self.schema, padded)))

    def records(self) -> Iterator[tuple[Record, bool]]:
        """Yield ``(record, is_last)`` pairs in input order."""
        try:
            while self._pending is not None:
                current = self._pending
                self._pending = self._next_row()
                yield self._to_record(current), self._pending is None
        except (OSError, UnicodeDecodeError, csv.Error) as exc:
            raise IngestError(f'Error reading input CSV file "{self.path}": {exc}') from exc


def load(path: Path) -> tuple[list[str], list[Record]]:
    """Read the whole input; small inputs and tests only need this form."""
    with RecordSource(path) as source:
        return source.schema, [record for record, _is_last in source.records()]
