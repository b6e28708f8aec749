from __future__ import annotations

import logging
import re

from ..logging.error_log import OPTIONS_DECODE_ERROR, ErrorLogBuffer
from ..models.property_record import Option, OptionsDecodeError, PropertyRecord, decode_options
from ..models.table import NormalizedTable
from .normalizer import get_field_type

"""NormalizedTable -> PropertyRecord list.

The builder is total over any NormalizedTable: a malformed Options cell
degrades that row's options to [] (logged, and recorded in the optional
ErrorLogBuffer) without aborting the remaining rows.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "BOOLEAN_OPTIONS",
    "DEFAULT_GROUP_NAME",
    "build_property_records",
    "parse_display_order",
]

DEFAULT_GROUP_NAME = "contactinformation"

BOOLEAN_OPTIONS = (
    Option(label="Yes", value="true", display_order=1, hidden=False, readonly=False),
    Option(label="No", value="false", display_order=2, hidden=False, readonly=False),
)

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_display_order(value: str) -> int:
    """Parse a leading base-10 integer ("12abc" -> 12); 0 when there is none."""
    m = _LEADING_INT.match(value or "")
    return int(m.group(1)) if m else 0


def build_property_records(
    table: NormalizedTable | None,
    issues: ErrorLogBuffer | None = None,
    source: str = "<table>",
) -> list[PropertyRecord]:
    if table is None:
        return []

    index = table.index
    records: list[PropertyRecord] = []
    for row_no, row in enumerate(table.rows, start=1):
        type_ = index.get(row, "type").lower() or "string"
        field_type = index.get(row, "field type") or get_field_type(type_)

        options: tuple[Option, ...] | None = None
        if type_ in ("bool", "boolean"):
            options = BOOLEAN_OPTIONS
        elif type_ == "enumeration":
            cell = index.get(row, "options")
            if cell.strip():
                try:
                    options = tuple(decode_options(cell))
                except OptionsDecodeError as e:
                    logger.warning(f"{source} row {row_no}: {e}")
                    if issues is not None:
                        issues.add(source, row_no, OPTIONS_DECODE_ERROR, str(e))
                    options = ()
            else:
                options = ()

        records.append(
            PropertyRecord(
                name=index.get(row, "internal name"),
                label=index.get(row, "name"),
                description=index.get(row, "description"),
                group_name=index.get(row, "group name") or DEFAULT_GROUP_NAME,
                type=type_,
                field_type=field_type,
                hidden=index.get(row, "hidden").lower() == "true",
                display_order=parse_display_order(index.get(row, "display order")),
                form_field=index.get(row, "form field").lower() != "false",
                has_unique_value=False,
                options=options,
            )
        )
    return records
