from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Any

from ..csv.reader import CsvReadError, read_csv_bytes
from ..gateway.service import Gateway
from ..logging.error_log import ErrorLogBuffer
from ..models.property_record import Option, PropertyRecord
from ..models.table import NormalizedTable, RawTable
from . import mutations
from .builder import build_property_records
from .normalizer import normalize_table

"""Edit-session controller.

One SessionController owns one immutable SessionState. Every command
computes a new state with a reducer (normalizer / mutations / builder) and
publishes it to the subscribers; the presentation layer only renders state
and calls commands. Network lookups that follow an object-type change are
issued explicitly by ``select_object_type`` after the state transition.

Concurrency model: single session, cooperative. A second upload while one
is pending is rejected (``is_uploading``). Lookups are last-selection-wins:
a lookup that completes after a newer ``select_object_type`` is dropped.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "CUSTOM_OBJECT_TYPE",
    "CustomObject",
    "Notification",
    "SessionController",
    "SessionState",
    "UploadInProgressError",
]

CUSTOM_OBJECT_TYPE = "custom"
CUSTOM_OBJECT_PREFIX = "2-"


class UploadInProgressError(Exception):
    """Raised when upload() is called while a previous upload is pending."""


@dataclass(frozen=True)
class Notification:
    """Transient message shown to the user (toast)."""
    title: str
    description: str
    variant: str = "default"  # default | destructive


@dataclass(frozen=True)
class CustomObject:
    name: str
    object_type_id: str
    group_names: tuple[str, ...]


@dataclass(frozen=True)
class SessionState:
    object_type: str | None = None
    selected_custom_object: str | None = None
    source: str | None = None
    raw_table: RawTable | None = None
    table: NormalizedTable | None = None
    exclude_default_properties: bool = True
    records: tuple[PropertyRecord, ...] | None = None
    is_uploading: bool = False
    is_loading_lookup: bool = False
    lookup_error: str | None = None
    custom_objects: tuple[CustomObject, ...] = ()
    group_names: tuple[str, ...] = ()
    notifications: tuple[Notification, ...] = field(default_factory=tuple)

    @property
    def target_object_type(self) -> str | None:
        if self.object_type == CUSTOM_OBJECT_TYPE:
            return self.selected_custom_object
        return self.object_type

    @property
    def can_upload(self) -> bool:
        return self.table is not None and self.target_object_type is not None and not self.is_uploading


Listener = Callable[[SessionState], None]


def _results(body: Any) -> list[dict[str, Any]]:
    """``body["results"]`` entries that are JSON objects; [] for any other shape."""
    results = body.get("results") if isinstance(body, dict) else None
    if not isinstance(results, list):
        return []
    return [r for r in results if isinstance(r, dict)]


def _custom_objects_from_schemas(body: Any) -> tuple[CustomObject, ...]:
    objects = []
    for schema in _results(body):
        object_type_id = str(schema.get("objectTypeId") or "")
        if not object_type_id.startswith(CUSTOM_OBJECT_PREFIX):
            continue
        properties = schema.get("properties")
        if not isinstance(properties, list):
            properties = []
        # 重複除去 (出現順を保持)
        groups = dict.fromkeys(
            str(p["groupName"]) for p in properties if isinstance(p, dict) and p.get("groupName")
        )
        objects.append(
            CustomObject(
                name=str(schema.get("name") or ""),
                object_type_id=object_type_id,
                group_names=tuple(groups),
            )
        )
    return tuple(objects)


class SessionController:
    def __init__(self, gateway: Gateway, *, exclude_default_properties: bool = True,
                 issues: ErrorLogBuffer | None = None) -> None:
        self._gateway = gateway
        self._issues = issues
        self._listeners: list[Listener] = []
        # select_object_type ごとに増加; 古い lookup の結果は破棄する
        self._lookup_generation = 0
        self._state = SessionState(exclude_default_properties=exclude_default_properties)

    @property
    def state(self) -> SessionState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a function that unsubscribes it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _set(self, state: SessionState) -> SessionState:
        self._state = state
        for listener in list(self._listeners):
            listener(state)
        return state

    def _notify(self, title: str, description: str, variant: str = "default") -> None:
        note = Notification(title=title, description=description, variant=variant)
        self._set(replace(self._state, notifications=self._state.notifications + (note,)))

    def dismiss_notifications(self) -> None:
        self._set(replace(self._state, notifications=()))

    # --- file / table --------------------------------------------------------

    def load_csv(self, data: bytes, source: str = "<upload>") -> SessionState:
        try:
            raw = read_csv_bytes(data, source=source)
        except CsvReadError as e:
            logger.error(str(e))
            self._notify("Error", str(e), "destructive")
            return self._state
        table = normalize_table(raw.headers, raw.rows, self._state.exclude_default_properties)
        logger.info(f"loaded {source}: {len(raw.rows)} rows -> {len(table or ())} properties")
        return self._set(replace(self._state, source=source, raw_table=raw, table=table, records=None))

    def set_exclude_default_properties(self, flag: bool) -> SessionState:
        state = replace(self._state, exclude_default_properties=flag)
        if state.raw_table is not None:
            raw = state.raw_table
            state = replace(state, table=normalize_table(raw.headers, raw.rows, flag), records=None)
        return self._set(state)

    def _edit(self, table: NormalizedTable | None) -> SessionState:
        return self._set(replace(self._state, table=table, records=None))

    def delete_row(self, index: int) -> SessionState:
        return self._edit(mutations.delete_row(self._state.table, index))

    def clone_row(self, index: int) -> SessionState:
        return self._edit(mutations.clone_row(self._state.table, index))

    def set_cell(self, row: int, col: int, value: Any) -> SessionState:
        return self._edit(mutations.set_cell(self._state.table, row, col, value))

    def set_type(self, row: int, new_type: str) -> SessionState:
        return self._edit(mutations.set_type(self._state.table, row, new_type))

    def set_field_type(self, row: int, new_field_type: str) -> SessionState:
        return self._edit(mutations.set_field_type(self._state.table, row, new_field_type))

    def set_options(self, row: int, options: list[Option]) -> SessionState:
        return self._edit(mutations.set_options(self._state.table, row, options))

    def generate_records(self) -> tuple[PropertyRecord, ...] | None:
        if self._state.table is None:
            return None
        records = tuple(
            build_property_records(self._state.table, self._issues, self._state.source or "<table>")
        )
        self._set(replace(self._state, records=records))
        return records

    def reset(self) -> SessionState:
        return self._set(SessionState(exclude_default_properties=self._state.exclude_default_properties))

    # --- object type lookups ------------------------------------------------

    async def select_object_type(self, object_type: str | None) -> SessionState:
        """Switch the target object type and load its lookup data.

        When another selection happens while the lookup is pending, the
        older result is discarded and only the latest selection is applied.
        """
        self._lookup_generation += 1
        generation = self._lookup_generation
        self._set(
            replace(
                self._state,
                object_type=object_type,
                selected_custom_object=None,
                custom_objects=(),
                group_names=(),
                lookup_error=None,
                is_loading_lookup=bool(object_type),
            )
        )
        if object_type == CUSTOM_OBJECT_TYPE:
            await self._load_custom_objects(generation)
        elif object_type:
            await self._load_property_groups(object_type, generation)
        return self._state

    def select_custom_object(self, object_type_id: str | None) -> SessionState:
        state = replace(self._state, selected_custom_object=object_type_id)
        chosen = next((o for o in state.custom_objects if o.object_type_id == object_type_id), None)
        if chosen is not None:
            state = replace(state, group_names=chosen.group_names)
        return self._set(state)

    def _is_stale(self, generation: int, what: str) -> bool:
        if generation == self._lookup_generation:
            return False
        logger.debug(f"discarding stale {what} lookup (object type is now {self._state.object_type})")
        return True

    def _finish_lookup(self, **changes: Any) -> None:
        self._set(replace(self._state, is_loading_lookup=False, **changes))

    async def _load_custom_objects(self, generation: int) -> None:
        result = await self._gateway.fetch_schemas()
        if self._is_stale(generation, "custom object"):
            return
        if not result.ok:
            message = result.error or f"HTTP error! status: {result.status_code}"
            logger.error(f"Error fetching custom objects: {message}")
            self._finish_lookup(lookup_error=message)
            return
        if not _results(result.body):
            self._finish_lookup(custom_objects=(), lookup_error="No custom objects found")
            return
        self._finish_lookup(custom_objects=_custom_objects_from_schemas(result.body))

    async def _load_property_groups(self, object_type: str, generation: int) -> None:
        result = await self._gateway.fetch_property_groups(object_type)
        if self._is_stale(generation, f"{object_type} group"):
            return
        if not result.ok:
            message = result.error or f"HTTP error! status: {result.status_code}"
            logger.error(f"Error fetching groups for {object_type}: {message}")
            self._finish_lookup(lookup_error=message)
            return
        results = _results(result.body)
        if not results:
            self._finish_lookup(group_names=(), lookup_error="No groups found")
            return
        names = tuple(str(g.get("name") or "") for g in results)
        self._finish_lookup(group_names=names)

    # --- upload ------------------------------------------------------------------

    async def upload(self) -> int | None:
        """Regenerate records from the table and send them to HubSpot.

        Returns the number of created properties, or None when the upload
        did not happen or failed (a notification explains why).

        Raises:
            UploadInProgressError: a previous upload has not finished yet
        """
        if self._state.is_uploading:
            raise UploadInProgressError("an upload is already in progress")
        target = self._state.target_object_type
        if self._state.table is None or target is None:
            self._notify(
                "Error",
                "Please load a property file and ensure an object type is selected.",
                "destructive",
            )
            return None

        records = self.generate_records() or ()
        self._set(replace(self._state, is_uploading=True))
        try:
            result = await self._gateway.upload_properties(target, [r.to_dict() for r in records])
        finally:
            self._set(replace(self._state, is_uploading=False))

        if not result.ok:
            message = result.error or "Failed to upload properties to HubSpot"
            logger.error(f"Error uploading to HubSpot: {message}")
            self._notify("Error", message, "destructive")
            return None

        created = int(result.body.get("numPropertiesCreated", 0))
        noun = "property" if created == 1 else "properties"
        self._notify("Successful request", f"Uploaded {created} {noun} to HubSpot.")
        return created
