"""
Sync protocol between a display surface and the event store.

Requests and responses are closed, tagged unions keyed on ``type``. Every
mutation response carries the whole event list so the display surface can
replace its cache instead of merging deltas.
"""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import Field, TypeAdapter, ValidationError

from event_scheduler.schemas.event import CamelModel, Event, EventDraft, EventPatch
from event_scheduler.services.exceptions import ProtocolError, ValidationFailed


# Requests (display surface -> store)

class ReadyRequest(CamelModel):
    type: Literal["ready"] = "ready"


class CreateRequest(CamelModel):
    type: Literal["create"] = "create"
    draft: EventDraft


class UpdateRequest(CamelModel):
    type: Literal["update"] = "update"
    event_id: str = Field(..., min_length=1)
    patch: EventPatch


class ToggleRsvpRequest(CamelModel):
    type: Literal["toggleRSVP"] = "toggleRSVP"
    event_id: str = Field(..., min_length=1)


class DeleteRequest(CamelModel):
    type: Literal["delete"] = "delete"
    event_id: str = Field(..., min_length=1)


Request = Annotated[
    Union[ReadyRequest, CreateRequest, UpdateRequest, ToggleRsvpRequest, DeleteRequest],
    Field(discriminator="type"),
]


# Responses (store -> display surface)

class InitialStateResponse(CamelModel):
    type: Literal["initialState"] = "initialState"
    username: str
    events: list[Event]
    is_moderator: bool


class CreatedResponse(CamelModel):
    type: Literal["created"] = "created"
    event: Event
    events: list[Event]


class UpdatedResponse(CamelModel):
    type: Literal["updated"] = "updated"
    events: list[Event]


class RsvpChangedResponse(CamelModel):
    type: Literal["rsvpChanged"] = "rsvpChanged"
    events: list[Event]


class DeletedResponse(CamelModel):
    type: Literal["deleted"] = "deleted"
    events: list[Event]


class RejectedResponse(CamelModel):
    type: Literal["rejected"] = "rejected"
    reason: str
    code: str
    fields: list[str] = Field(default_factory=list)


Response = Annotated[
    Union[
        InitialStateResponse,
        CreatedResponse,
        UpdatedResponse,
        RsvpChangedResponse,
        DeletedResponse,
        RejectedResponse,
    ],
    Field(discriminator="type"),
]

_request_adapter = TypeAdapter(Request)
_response_adapter = TypeAdapter(Response)

# Errors that mean the envelope itself is unusable rather than its payload
_ENVELOPE_ERRORS = {
    "union_tag_invalid",
    "union_tag_not_found",
    "json_invalid",
    "json_type",
    "model_attributes_type",
    "model_type",
    "dict_type",
}


def parse_request(payload: Union[str, bytes, dict[str, Any]]):
    """
    Validate a raw request.

    Raises:
        ProtocolError: unknown tag or malformed envelope
        ValidationFailed: well-formed envelope with an invalid body
    """
    try:
        if isinstance(payload, (str, bytes)):
            return _request_adapter.validate_json(payload)
        return _request_adapter.validate_python(payload)
    except ValidationError as exc:
        errors = exc.errors()
        if any(err["type"] in _ENVELOPE_ERRORS and len(err["loc"]) <= 1 for err in errors):
            raise ProtocolError(_describe_envelope(payload, errors)) from exc
        fields = [str(err["loc"][-1]) for err in errors if err["loc"]]
        raise ValidationFailed(fields) from exc


def _describe_envelope(payload: Any, errors: list[dict]) -> str:
    tag: Optional[Any] = payload.get("type") if isinstance(payload, dict) else None
    if tag is not None:
        return f"Unknown message type: {tag!r}"
    return f"Malformed message: {errors[0]['msg']}"


def dump_response(response) -> dict[str, Any]:
    return _response_adapter.dump_python(response, mode="json", by_alias=True)


def load_response(payload: dict[str, Any]):
    """Inverse of dump_response, used by display-side clients and tests."""
    return _response_adapter.validate_python(payload)
