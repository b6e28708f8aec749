from __future__ import annotations

import logging
from collections.abc import Sequence

from ..models.table import HeaderIndex, NormalizedTable

"""CSV -> editable property table normalization.

Steps (order matters):
1. drop excluded columns (and blank header cells) from headers and rows
2. insert "Field Type" after "Type" when missing, derived from the type cell
3. append "Hidden" (default "false") when missing
4. when exclude_defaults, drop rows flagged "hubspot defined" = true. The flag
   is read from the ORIGINAL row at the ORIGINAL column position, because the
   column itself is removed in step 1.

Running normalize_table on its own output is a no-op.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "EXCLUDED_COLUMNS",
    "field_type_choices",
    "get_field_type",
    "normalize_table",
]

EXCLUDED_COLUMNS = frozenset({
    "deleted",
    "hubspot defined",
    "created user",
    "usages",
    "read only value",
    "read only definition",
    "calculated",
    "external options",
})

_FIELD_TYPES = {
    "string": "text",
    "number": "number",
    "date": "date",
    "datetime": "date",
    "bool": "booleancheckbox",
    "boolean": "booleancheckbox",
    "enumeration": "select",
}

# 編集画面で選択可能な fieldType (type 別)
_FIELD_TYPE_CHOICES = {
    "enumeration": ("select", "radio", "checkbox"),
    "boolean": ("booleancheckbox",),
    "bool": ("booleancheckbox",),
    "number": ("number",),
    "date": ("date",),
    "datetime": ("date",),
}
_DEFAULT_CHOICES = ("text", "textarea", "file", "calculation_equation")


def get_field_type(type_: str | None) -> str:
    """Map a HubSpot property type to its default field type."""
    return _FIELD_TYPES.get((type_ or "").lower(), "text")


def field_type_choices(type_: str | None) -> tuple[str, ...]:
    return _FIELD_TYPE_CHOICES.get((type_ or "").lower(), _DEFAULT_CHOICES)


def normalize_table(
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    exclude_defaults: bool,
) -> NormalizedTable | None:
    """Normalize a parsed CSV into a NormalizedTable.

    Returns None for empty input (no table, not an error).
    """
    if not headers or not rows:
        return None

    kept = [
        i for i, header in enumerate(headers)
        if header and header.lower() not in EXCLUDED_COLUMNS
    ]
    out_headers = [headers[i] for i in kept]
    out_rows = [[row[i] if i < len(row) and row[i] else "" for i in kept] for row in rows]

    index = HeaderIndex(out_headers)
    type_idx = index.index_of("type")
    if "field type" not in index and type_idx is not None:
        out_headers.insert(type_idx + 1, "Field Type")
        for row in out_rows:
            row.insert(type_idx + 1, get_field_type(row[type_idx]))

    if "hidden" not in index:
        out_headers.append("Hidden")
        for row in out_rows:
            row.append("false")

    flag_idx = HeaderIndex(headers).index_of("hubspot defined")
    if exclude_defaults and flag_idx is not None:
        before = len(out_rows)
        out_rows = [
            row for row, original in zip(out_rows, rows)
            if not (flag_idx < len(original) and (original[flag_idx] or "").lower() == "true")
        ]
        logger.debug("excluded %d HubSpot-defined properties", before - len(out_rows))

    return NormalizedTable.of(out_headers, out_rows)
