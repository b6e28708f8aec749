from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from functools import cached_property

"""Table models for the property CSV pipeline.

RawTable is what the CSV reader produces (header row + string rows, ragged
rows allowed). NormalizedTable is the editable table: a fixed header set and
rows that always have exactly len(headers) cells.
"""

__all__ = [
    "HeaderIndex",
    "NormalizedTable",
    "RawTable",
]


class HeaderIndex:
    """Case-insensitive header name -> column index lookup.

    The first occurrence of a header wins when names repeat.
    """

    def __init__(self, headers: Sequence[str]) -> None:
        self._positions: dict[str, int] = {}
        for i, header in enumerate(headers):
            key = (header or "").lower()
            if key not in self._positions:
                self._positions[key] = i

    def index_of(self, name: str) -> int | None:
        return self._positions.get(name.lower())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._positions

    def get(self, row: Sequence[str], name: str, default: str = "") -> str:
        """Return the cell for ``name`` in ``row`` or ``default`` when absent/blank."""
        idx = self.index_of(name)
        if idx is None or idx >= len(row):
            return default
        value = row[idx]
        return value if value else default


@dataclass(frozen=True)
class RawTable:
    headers: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]

    @staticmethod
    def of(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> RawTable:
        return RawTable(
            headers=tuple(headers),
            rows=tuple(tuple(r) for r in rows),
        )


@dataclass(frozen=True)
class NormalizedTable:
    """Editable property table.

    Instances are never modified; every edit builds a new table, so the
    header index can be cached per version.
    """
    headers: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]

    def __post_init__(self) -> None:
        width = len(self.headers)
        for i, row in enumerate(self.rows):
            if len(row) != width:
                raise ValueError(
                    f"row {i} has {len(row)} cells, expected {width}"
                )

    @staticmethod
    def of(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> NormalizedTable:
        return NormalizedTable(
            headers=tuple(headers),
            rows=tuple(tuple(r) for r in rows),
        )

    @cached_property
    def index(self) -> HeaderIndex:
        return HeaderIndex(self.headers)

    def with_rows(self, rows: Sequence[Sequence[str]]) -> NormalizedTable:
        return NormalizedTable.of(self.headers, rows)

    def __len__(self) -> int:
        return len(self.rows)
