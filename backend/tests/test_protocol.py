"""
Tests for request parsing and response serialization.
"""

import json

import pytest

from event_scheduler.schemas.event import utcnow
from event_scheduler.schemas.protocol import (
    CreateRequest,
    DeleteRequest,
    ReadyRequest,
    RejectedResponse,
    ToggleRsvpRequest,
    UpdateRequest,
    UpdatedResponse,
    dump_response,
    load_response,
    parse_request,
)
from event_scheduler.services.exceptions import ProtocolError, ValidationFailed
from tests.conftest import future


def test_parse_each_request_tag():
    start = future().isoformat()
    assert isinstance(parse_request({"type": "ready"}), ReadyRequest)
    create = parse_request({
        "type": "create",
        "draft": {"title": "Meetup", "category": "Social", "startTime": start},
    })
    assert isinstance(create, CreateRequest)
    assert create.draft.description == ""

    update = parse_request({"type": "update", "eventId": "e1", "patch": {"title": "New"}})
    assert isinstance(update, UpdateRequest)
    assert update.patch.changes() == {"title": "New"}

    assert isinstance(parse_request({"type": "toggleRSVP", "eventId": "e1"}), ToggleRsvpRequest)
    assert isinstance(parse_request('{"type": "delete", "eventId": "e1"}'), DeleteRequest)


def test_unknown_tag_is_protocol_error():
    with pytest.raises(ProtocolError) as exc:
        parse_request({"type": "rsvpEvent", "eventId": "e1"})
    assert "rsvpEvent" in exc.value.message


@pytest.mark.parametrize("payload", ["not json", "[1, 2]", {"eventId": "e1"}])
def test_malformed_envelope_is_protocol_error(payload):
    with pytest.raises(ProtocolError):
        parse_request(payload)


def test_invalid_draft_names_fields():
    with pytest.raises(ValidationFailed) as exc:
        parse_request({
            "type": "create",
            "draft": {"title": "  ", "category": "", "startTime": "tomorrow"},
        })
    assert set(exc.value.fields) == {"title", "category", "startTime"}


def test_missing_event_id_is_validation_failure():
    with pytest.raises(ValidationFailed) as exc:
        parse_request({"type": "toggleRSVP"})
    assert exc.value.fields == ["eventId"]


def test_patch_cannot_clear_required_fields():
    with pytest.raises(ValidationFailed) as exc:
        parse_request({"type": "update", "eventId": "e1", "patch": {"title": None}})
    assert exc.value.fields == ["title"]


def test_patch_null_optional_text_becomes_blank():
    update = parse_request({
        "type": "update",
        "eventId": "e1",
        "patch": {"description": None, "location": None},
    })
    assert update.patch.changes() == {"description": "", "location": ""}


def test_patch_ignores_immutable_fields():
    update = parse_request({
        "type": "update",
        "eventId": "e1",
        "patch": {"creator": "mallory", "id": "other", "rsvps": []},
    })
    assert update.patch.changes() == {}


def test_rejected_response_is_camel_case_json():
    data = dump_response(RejectedResponse(reason="Invalid field(s): endTime", code="validation_failed", fields=["endTime"]))
    assert data == {
        "type": "rejected",
        "reason": "Invalid field(s): endTime",
        "code": "validation_failed",
        "fields": ["endTime"],
    }


def test_event_list_response_round_trip():
    events = [{
        "id": "e1",
        "title": "Meetup",
        "description": "",
        "startTime": future().isoformat(),
        "endTime": "",
        "location": "",
        "category": "Social",
        "creator": "alice",
        "createdAt": utcnow().isoformat(),
        "rsvps": [{"userId": "bob", "timestamp": utcnow().isoformat()}],
    }]
    response = load_response({"type": "updated", "events": events})
    assert isinstance(response, UpdatedResponse)

    data = dump_response(response)
    assert data["events"][0]["rsvps"][0]["userId"] == "bob"
    assert data["events"][0]["endTime"] is None
    assert load_response(json.loads(json.dumps(data))) == response
