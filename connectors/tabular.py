"""Tabular Source/Sink.

The intake workbook is a set of named tables (PO, Items, Synced, Errors, ...).
Row indices are 0-based data indices (the header row is not counted); the
corresponding spreadsheet row number is index + 2.

Implementations:
- CsvWorkbook: a directory with one <table>.csv per table
"""

import csv
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from core.errors import SetupFailure


@dataclass
class Table:
    """A table read from the workbook: header row plus data rows."""
    name: str
    headers: List[str] = field(default_factory=list)
    rows: List[List[str]] = field(default_factory=list)

    def column_index(self, header: str) -> Optional[int]:
        """Case-insensitive header lookup."""
        wanted = header.strip().casefold()
        for i, name in enumerate(self.headers):
            if name.strip().casefold() == wanted:
                return i
        return None

    def records(self) -> List[Dict[str, str]]:
        """Rows as header -> value dicts, padded to the header width."""
        return [
            {h: (row[i] if i < len(row) else "") for i, h in enumerate(self.headers)}
            for row in self.rows
        ]

    def __len__(self) -> int:
        return len(self.rows)


class TabularStore(ABC):
    """Abstract workbook interface used by the batch drivers."""

    @abstractmethod
    def has_table(self, table: str) -> bool:
        pass

    @abstractmethod
    def read_rows(self, table: str) -> Table:
        """Read a table.

        Raises:
            SetupFailure: If the table does not exist
        """
        pass

    @abstractmethod
    def write_rows(
        self,
        table: str,
        rows: Sequence[Sequence[Any]],
        headers: Optional[Sequence[str]] = None,
    ) -> None:
        """Append rows, creating the table with `headers` if it is missing."""
        pass

    @abstractmethod
    def update_range(self, table: str, row_index: int, column: str, value: Any) -> None:
        """Set one cell. The column is created if the header is missing."""
        pass

    @abstractmethod
    def delete_rows(self, table: str, row_index: int, count: int = 1) -> None:
        """Delete `count` data rows starting at `row_index`."""
        pass


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


class CsvWorkbook(TabularStore):
    """Workbook stored as a directory of CSV files."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def _path(self, table: str) -> Path:
        return self.directory / f"{table}.csv"

    def has_table(self, table: str) -> bool:
        return self._path(table).exists()

    def read_rows(self, table: str) -> Table:
        path = self._path(table)
        if not path.exists():
            raise SetupFailure(f"Table '{table}' not found in {self.directory}")
        with open(path, newline="", encoding="utf-8") as f:
            all_rows = list(csv.reader(f))
        if not all_rows:
            return Table(name=table)
        return Table(name=table, headers=all_rows[0], rows=all_rows[1:])

    def _write(self, table: Table) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        with open(self._path(table.name), "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(table.headers)
            writer.writerows(table.rows)

    def write_rows(
        self,
        table: str,
        rows: Sequence[Sequence[Any]],
        headers: Optional[Sequence[str]] = None,
    ) -> None:
        if self.has_table(table):
            current = self.read_rows(table)
            if not current.headers and headers:
                current.headers = list(headers)
        elif headers is not None:
            current = Table(name=table, headers=list(headers))
        else:
            raise SetupFailure(f"Table '{table}' not found in {self.directory}")

        current.rows.extend([_cell(v) for v in row] for row in rows)
        self._write(current)

    def update_range(self, table: str, row_index: int, column: str, value: Any) -> None:
        current = self.read_rows(table)
        if not 0 <= row_index < len(current.rows):
            raise IndexError(f"Row {row_index} out of range for table '{table}'")

        col = current.column_index(column)
        if col is None:
            current.headers.append(column)
            col = len(current.headers) - 1

        row = current.rows[row_index]
        if len(row) <= col:
            row.extend([""] * (col + 1 - len(row)))
        row[col] = _cell(value)
        self._write(current)

    def delete_rows(self, table: str, row_index: int, count: int = 1) -> None:
        current = self.read_rows(table)
        if not 0 <= row_index < len(current.rows):
            raise IndexError(f"Row {row_index} out of range for table '{table}'")
        del current.rows[row_index:row_index + count]
        self._write(current)
