from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

"""HubSpot property definition models.

PropertyRecord mirrors one input of the batch-create request body
(crm/v3/properties/{objectType}/batch/create). Option lists live in the
table's "Options" cell as a compact JSON array between edits; the codec for
that text form is defined here so the editor and the builder share it.
"""

__all__ = [
    "FieldType",
    "Option",
    "OptionsDecodeError",
    "PropertyRecord",
    "PropertyType",
    "decode_options",
    "encode_options",
]


class PropertyType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    DATETIME = "datetime"
    ENUMERATION = "enumeration"
    BOOL = "bool"


class FieldType(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    DATE = "date"
    FILE = "file"
    NUMBER = "number"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    BOOLEANCHECKBOX = "booleancheckbox"
    CALCULATION_EQUATION = "calculation_equation"


class OptionsDecodeError(ValueError):
    """Raised when an Options cell is not a JSON array."""


@dataclass(frozen=True)
class Option:
    label: str
    value: str
    display_order: int
    hidden: bool = False
    readonly: bool = False

    def to_dict(self) -> dict[str, Any]:
        # キー順は HubSpot API / セル表現で固定
        return {
            "label": self.label,
            "value": self.value,
            "displayOrder": self.display_order,
            "hidden": self.hidden,
            "readonly": self.readonly,
        }


@dataclass(frozen=True)
class PropertyRecord:
    """Structured definition of a single property to create on an object type.

    ``type`` and ``field_type`` are kept as plain strings: the builder passes
    through whatever the table holds and HubSpot validates the values.
    """
    name: str
    label: str
    description: str
    group_name: str
    type: str
    field_type: str
    hidden: bool
    display_order: int
    form_field: bool = True
    has_unique_value: bool = False
    options: tuple[Option, ...] | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "label": self.label,
            "description": self.description,
            "groupName": self.group_name,
            "type": self.type,
            "fieldType": self.field_type,
            "hidden": self.hidden,
            "displayOrder": self.display_order,
            "formField": self.form_field,
            "hasUniqueValue": self.has_unique_value,
        }
        if self.options is not None:
            data["options"] = [o.to_dict() for o in self.options]
        return data


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _flag(value: Any) -> bool:
    # CSV 由来の "false" / "FALSE" を True にしない
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def _order(value: Any, position: int) -> int:
    if value is None or isinstance(value, bool):
        return position
    try:
        return int(value)
    except (TypeError, ValueError):
        return position


def encode_options(options: list[Option] | tuple[Option, ...]) -> str:
    """Serialize options to the compact JSON text stored in the Options cell."""
    return json.dumps([o.to_dict() for o in options], ensure_ascii=False, separators=(",", ":"))


def decode_options(text: str) -> list[Option]:
    """Parse an Options cell.

    Raises:
        OptionsDecodeError: text is not valid JSON or does not hold a JSON array
    """
    try:
        parsed = json.loads(text)
    except (TypeError, ValueError) as e:
        raise OptionsDecodeError(f"invalid options json: {e}") from e
    if not isinstance(parsed, list):
        raise OptionsDecodeError(f"options must be a list, got {type(parsed).__name__}")

    options: list[Option] = []
    for position, entry in enumerate(parsed):
        if not isinstance(entry, dict):
            entry = {}
        options.append(
            Option(
                label=_text(entry.get("label")),
                value=_text(entry.get("value")),
                display_order=_order(entry.get("displayOrder"), position),
                hidden=_flag(entry.get("hidden", False)),
                readonly=_flag(entry.get("readonly", False)),
            )
        )
    return options
