from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any

from ..models.property_record import Option, OptionsDecodeError, decode_options, encode_options
from ..models.table import NormalizedTable
from .normalizer import get_field_type

"""Reducer-style edits of a NormalizedTable.

Every function takes the current table (or None when no file is loaded) and
returns a new table; the input is never modified. A None table is a silent
no-op. Row indices come from rendered rows, so an out-of-range index raises
IndexError instead of being clamped.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "add_option",
    "clone_row",
    "delete_row",
    "read_options",
    "remove_option",
    "set_cell",
    "set_field_type",
    "set_options",
    "set_type",
    "update_option",
]


def _cell_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _replace_cell(table: NormalizedTable, row: int, col: int, value: str) -> NormalizedTable:
    cells = list(table.rows[row])
    cells[col] = value  # IndexError for an unknown column keeps the width invariant
    rows = list(table.rows)
    rows[row] = tuple(cells)
    return table.with_rows(rows)


def delete_row(table: NormalizedTable | None, index: int) -> NormalizedTable | None:
    if table is None:
        return None
    rows = list(table.rows)
    del rows[index]
    return table.with_rows(rows)


def clone_row(table: NormalizedTable | None, index: int) -> NormalizedTable | None:
    if table is None:
        return None
    rows = list(table.rows)
    rows.insert(index + 1, tuple(rows[index]))
    return table.with_rows(rows)


def set_cell(table: NormalizedTable | None, row: int, col: int, value: Any) -> NormalizedTable | None:
    if table is None:
        return None
    return _replace_cell(table, row, col, _cell_text(value))


def set_type(table: NormalizedTable | None, row: int, new_type: str) -> NormalizedTable | None:
    """Update the Type cell and re-derive Field Type when that column exists."""
    if table is None:
        return None
    type_idx = table.index.index_of("type")
    if type_idx is None:
        return table
    updated = _replace_cell(table, row, type_idx, new_type)
    field_idx = table.index.index_of("field type")
    if field_idx is not None:
        updated = _replace_cell(updated, row, field_idx, get_field_type(new_type))
    return updated


def set_field_type(table: NormalizedTable | None, row: int, new_field_type: str) -> NormalizedTable | None:
    if table is None:
        return None
    field_idx = table.index.index_of("field type")
    if field_idx is not None:
        return _replace_cell(table, row, field_idx, new_field_type)
    type_idx = table.index.index_of("type")
    if type_idx is None or type_idx + 1 >= len(table.headers):
        return table
    # Field Type 列なし: Type の直後のスロットに書く
    return _replace_cell(table, row, type_idx + 1, new_field_type)


def set_options(
    table: NormalizedTable | None, row: int, options: list[Option] | tuple[Option, ...]
) -> NormalizedTable | None:
    if table is None:
        return None
    options_idx = table.index.index_of("options")
    if options_idx is None:
        return table
    return _replace_cell(table, row, options_idx, encode_options(options))


def read_options(table: NormalizedTable, row: int) -> list[Option]:
    """Options of ``row`` for editing; an unreadable cell reads as no options."""
    cell = table.index.get(table.rows[row], "options")
    if not cell.strip():
        return []
    try:
        return decode_options(cell)
    except OptionsDecodeError as e:
        logger.warning(f"row {row + 1}: {e}")
        return []


def add_option(table: NormalizedTable | None, row: int) -> NormalizedTable | None:
    if table is None:
        return None
    options = read_options(table, row)
    options.append(Option(label="", value="", display_order=len(options)))
    return set_options(table, row, options)


def update_option(
    table: NormalizedTable | None, row: int, index: int, **changes: Any
) -> NormalizedTable | None:
    """Replace fields of one option, e.g. ``update_option(t, 0, 1, label="Red")``."""
    if table is None:
        return None
    options = read_options(table, row)
    options[index] = replace(options[index], **changes)
    return set_options(table, row, options)


def remove_option(table: NormalizedTable | None, row: int, index: int) -> NormalizedTable | None:
    if table is None:
        return None
    options = read_options(table, row)
    del options[index]
    return set_options(table, row, options)
