from __future__ import annotations

import asyncio

import pytest

from hubprop.config.loader import Settings
from hubprop.gateway.service import Gateway, GatewayResponse
from hubprop.services.controller import SessionController, SessionState, UploadInProgressError

SCHEMAS = ("GET", "/crm-object-schemas/v3/schemas")
UPLOAD_CONTACTS = ("POST", "/crm/v3/properties/contacts/batch/create")
UPLOAD_CUSTOM = ("POST", "/crm/v3/properties/2-555/batch/create")
GROUPS_CONTACTS = ("GET", "/crm/v3/properties/contacts/groups")


def _controller(settings: Settings, fake) -> SessionController:
    return SessionController(Gateway(settings, transport=fake.transport))


def test_load_csv_normalizes_and_publishes(settings, fake_hubspot, property_csv):
    ctrl = _controller(settings, fake_hubspot({}))
    seen: list[SessionState] = []
    ctrl.subscribe(seen.append)

    state = ctrl.load_csv(property_csv.encode("utf-8"), source="props.csv")

    assert state.table is not None
    assert list(state.table.headers) == [
        "Name", "Internal name", "Type", "Field Type", "Description",
        "Group name", "Options", "Display order", "Hidden",
    ]
    # HubSpot defined=true の Email 行は除外
    assert [r[0] for r in state.table.rows] == ["Favorite color", "Newsletter"]
    assert seen[-1] is state


def test_load_invalid_csv_notifies_and_keeps_state(settings, fake_hubspot):
    ctrl = _controller(settings, fake_hubspot({}))
    state = ctrl.load_csv(b"Name,Type\n", source="empty.csv")
    assert state.table is None
    assert state.notifications[-1].variant == "destructive"
    assert "Invalid CSV format" in state.notifications[-1].description


def test_toggle_exclude_defaults_renormalizes_from_raw(settings, fake_hubspot, property_csv):
    ctrl = _controller(settings, fake_hubspot({}))
    ctrl.load_csv(property_csv.encode("utf-8"))
    state = ctrl.set_exclude_default_properties(False)
    assert [r[0] for r in state.table.rows] == ["Email", "Favorite color", "Newsletter"]
    state = ctrl.set_exclude_default_properties(True)
    assert [r[0] for r in state.table.rows] == ["Favorite color", "Newsletter"]


def test_edits_clear_generated_records(settings, fake_hubspot, property_csv):
    ctrl = _controller(settings, fake_hubspot({}))
    ctrl.load_csv(property_csv.encode("utf-8"))
    records = ctrl.generate_records()
    assert [r.name for r in records] == ["favorite_color", "newsletter"]
    assert ctrl.state.records == records

    ctrl.clone_row(1)
    assert ctrl.state.records is None
    ctrl.set_type(2, "number")
    ctrl.set_cell(2, 1, "newsletter_copy")
    records = ctrl.generate_records()
    assert [(r.name, r.type, r.field_type) for r in records][-1] == ("newsletter_copy", "number", "number")


def test_select_standard_object_type_loads_groups(settings, fake_hubspot):
    fake = fake_hubspot({GROUPS_CONTACTS: (200, {"results": [{"name": "contactinformation"}, {"name": "sales"}]})})
    ctrl = _controller(settings, fake)
    state = asyncio.run(ctrl.select_object_type("contacts"))
    assert state.group_names == ("contactinformation", "sales")
    assert state.lookup_error is None
    assert state.is_loading_lookup is False


def test_select_object_type_empty_groups(settings, fake_hubspot):
    fake = fake_hubspot({GROUPS_CONTACTS: (200, {"results": []})})
    state = asyncio.run(_controller(settings, fake).select_object_type("contacts"))
    assert state.lookup_error == "No groups found"


def test_select_custom_object_type_filters_schemas(settings, fake_hubspot):
    body = {
        "results": [
            {"name": "cars", "objectTypeId": "2-555",
             "properties": [{"groupName": "car_info"}, {"groupName": "car_info"}, {"groupName": "pricing"}]},
            {"name": "contacts", "objectTypeId": "0-1", "properties": [{"groupName": "x"}]},
        ]
    }
    ctrl = _controller(settings, fake_hubspot({SCHEMAS: (200, body)}))
    state = asyncio.run(ctrl.select_object_type("custom"))
    assert [o.object_type_id for o in state.custom_objects] == ["2-555"]
    state = ctrl.select_custom_object("2-555")
    assert state.group_names == ("car_info", "pricing")
    assert state.target_object_type == "2-555"


def test_select_object_type_lookup_failure_sets_error(settings, fake_hubspot):
    fake = fake_hubspot({SCHEMAS: (401, {"message": "Authentication credentials not found"})})
    state = asyncio.run(_controller(settings, fake).select_object_type("custom"))
    assert state.lookup_error == "Authentication credentials not found"
    assert state.custom_objects == ()


def test_upload_requires_object_type(settings, fake_hubspot, property_csv):
    fake = fake_hubspot({})
    ctrl = _controller(settings, fake)
    ctrl.load_csv(property_csv.encode("utf-8"))
    assert asyncio.run(ctrl.upload()) is None
    assert ctrl.state.notifications[-1].variant == "destructive"
    assert fake.requests == []


def test_upload_success_regenerates_records(settings, fake_hubspot, property_csv):
    fake = fake_hubspot({
        GROUPS_CONTACTS: (200, {"results": [{"name": "contactinformation"}]}),
        UPLOAD_CONTACTS: (200, {"results": [{}, {}]}),
    })
    ctrl = _controller(settings, fake)
    ctrl.load_csv(property_csv.encode("utf-8"))
    asyncio.run(ctrl.select_object_type("contacts"))

    created = asyncio.run(ctrl.upload())

    assert created == 2
    assert ctrl.state.is_uploading is False
    assert ctrl.state.notifications[-1].description == "Uploaded 2 properties to HubSpot."
    inputs = fake.last_json()["inputs"]
    assert [p["name"] for p in inputs] == ["favorite_color", "newsletter"]
    assert inputs[1]["options"][0] == {
        "label": "Yes", "value": "true", "displayOrder": 1, "hidden": False, "readonly": False,
    }


def test_upload_to_custom_object(settings, fake_hubspot, property_csv):
    fake = fake_hubspot({
        SCHEMAS: (200, {"results": [{"name": "cars", "objectTypeId": "2-555", "properties": []}]}),
        UPLOAD_CUSTOM: (200, {"results": [{}]}),
    })
    ctrl = _controller(settings, fake)
    ctrl.load_csv(property_csv.encode("utf-8"))
    asyncio.run(ctrl.select_object_type("custom"))
    assert ctrl.state.can_upload is False
    ctrl.select_custom_object("2-555")
    assert asyncio.run(ctrl.upload()) == 1
    assert ctrl.state.notifications[-1].description == "Uploaded 1 property to HubSpot."


def test_upload_failure_notifies(settings, fake_hubspot, property_csv):
    fake = fake_hubspot({
        GROUPS_CONTACTS: (200, {"results": [{"name": "g"}]}),
        UPLOAD_CONTACTS: (400, {"message": "Invalid input JSON"}),
    })
    ctrl = _controller(settings, fake)
    ctrl.load_csv(property_csv.encode("utf-8"))
    asyncio.run(ctrl.select_object_type("contacts"))
    assert asyncio.run(ctrl.upload()) is None
    note = ctrl.state.notifications[-1]
    assert (note.title, note.description, note.variant) == ("Error", "Invalid input JSON", "destructive")
    assert ctrl.state.is_uploading is False


class _SlowGateway:
    def __init__(self) -> None:
        self.calls = 0

    async def fetch_property_groups(self, object_type):
        return GatewayResponse(200, {"results": [{"name": "g"}]})

    async def upload_properties(self, object_type, properties):
        self.calls += 1
        await asyncio.sleep(0.01)
        return GatewayResponse(200, {"numPropertiesCreated": len(properties)})


def test_second_upload_while_pending_is_rejected(property_csv):
    gateway = _SlowGateway()
    ctrl = SessionController(gateway)  # type: ignore[arg-type]
    ctrl.load_csv(property_csv.encode("utf-8"))

    async def scenario():
        await ctrl.select_object_type("contacts")
        first = asyncio.create_task(ctrl.upload())
        await asyncio.sleep(0)
        assert ctrl.state.is_uploading is True
        assert ctrl.state.can_upload is False
        with pytest.raises(UploadInProgressError):
            await ctrl.upload()
        return await first

    assert asyncio.run(scenario()) == 2
    assert gateway.calls == 1


def test_reset_keeps_exclude_flag(settings, fake_hubspot, property_csv):
    ctrl = _controller(settings, fake_hubspot({}))
    ctrl.set_exclude_default_properties(False)
    ctrl.load_csv(property_csv.encode("utf-8"))
    state = ctrl.reset()
    assert state.table is None and state.raw_table is None
    assert state.exclude_default_properties is False


def test_unsubscribe(settings, fake_hubspot):
    ctrl = _controller(settings, fake_hubspot({}))
    seen = []
    unsubscribe = ctrl.subscribe(seen.append)
    ctrl.dismiss_notifications()
    unsubscribe()
    ctrl.dismiss_notifications()
    assert len(seen) == 1


class _GatedGroupsGateway:
    """fetch_property_groups waits until the test releases that object type."""

    def __init__(self) -> None:
        self.gates: dict[str, asyncio.Event] = {}

    async def fetch_property_groups(self, object_type):
        await self.gates[object_type].wait()
        return GatewayResponse(200, {"results": [{"name": f"{object_type}-group"}]})


def test_overlapping_selections_keep_latest_lookup():
    gateway = _GatedGroupsGateway()
    ctrl = SessionController(gateway)  # type: ignore[arg-type]

    async def scenario():
        gateway.gates = {"contacts": asyncio.Event(), "companies": asyncio.Event()}
        first = asyncio.create_task(ctrl.select_object_type("contacts"))
        await asyncio.sleep(0)
        second = asyncio.create_task(ctrl.select_object_type("companies"))
        await asyncio.sleep(0)
        gateway.gates["companies"].set()
        await second
        # 先に選んだ contacts の応答が後から届く
        gateway.gates["contacts"].set()
        await first

    asyncio.run(scenario())
    state = ctrl.state
    assert state.object_type == "companies"
    assert state.group_names == ("companies-group",)
    assert state.is_loading_lookup is False
    assert state.lookup_error is None


def test_group_lookup_skips_non_object_entries(settings, fake_hubspot):
    fake = fake_hubspot({GROUPS_CONTACTS: (200, {"results": ["junk", None, {"name": "sales"}]})})
    state = asyncio.run(_controller(settings, fake).select_object_type("contacts"))
    assert state.group_names == ("sales",)


def test_schema_lookup_with_list_body(settings, fake_hubspot):
    fake = fake_hubspot({SCHEMAS: (200, [{"objectTypeId": "2-1"}])})
    state = asyncio.run(_controller(settings, fake).select_object_type("custom"))
    assert state.custom_objects == ()
    assert state.lookup_error == "No custom objects found"


def test_schema_lookup_tolerates_malformed_properties(settings, fake_hubspot):
    body = {"results": ["x", {"objectTypeId": "2-9", "name": "boats",
                              "properties": [1, {"groupName": "hull"}, {"label": "no group"}]}]}
    state = asyncio.run(_controller(settings, fake_hubspot({SCHEMAS: (200, body)})).select_object_type("custom"))
    assert [(o.name, o.group_names) for o in state.custom_objects] == [("boats", ("hull",))]
