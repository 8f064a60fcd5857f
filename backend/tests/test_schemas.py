"""
Tests for the event document model and derived status.
"""

from datetime import datetime, timezone, timedelta

from event_scheduler.schemas.event import (
    Event,
    EventStatus,
    decode_event_list,
    encode_event_list,
    event_status,
)

START = datetime(2030, 5, 1, 18, 0, tzinfo=timezone.utc)


def make_event(**overrides) -> Event:
    data = dict(
        id="e1",
        title="Meetup",
        category="Social",
        start_time=START,
        creator="alice",
        created_at=START - timedelta(days=10),
    )
    data.update(overrides)
    return Event(**data)


def test_status_without_end_time():
    event = make_event()
    assert event_status(event, START - timedelta(minutes=1)) is EventStatus.UPCOMING
    assert event_status(event, START) is EventStatus.LIVE
    assert event_status(event, START + timedelta(days=30)) is EventStatus.LIVE


def test_status_with_end_time():
    event = make_event(end_time=START + timedelta(hours=2))
    assert event_status(event, START + timedelta(hours=1)) is EventStatus.LIVE
    assert event_status(event, START + timedelta(hours=2)) is EventStatus.ENDED


def test_naive_instants_are_utc():
    event = make_event(start_time=datetime(2030, 5, 1, 18, 0))
    assert event.start_time == START


def test_document_uses_camel_case_keys():
    raw = encode_event_list([make_event()])
    assert '"startTime"' in raw
    assert '"createdAt"' in raw
    assert '"start_time"' not in raw


def test_decode_documents_written_by_older_clients():
    """Documents with an empty endTime string still load."""
    raw = (
        '[{"id": "1700000000000", "title": "Meetup", "description": "",'
        ' "startTime": "2030-05-01T18:00:00.000Z", "endTime": "", "location": "",'
        ' "category": "Social", "creator": "alice", "rsvps": [],'
        ' "createdAt": "2030-04-21T18:00:00.000Z"}]'
    )
    [event] = decode_event_list(raw)
    assert event.end_time is None
    assert event.start_time == START


def test_decode_missing_document():
    assert decode_event_list(None) == []
    assert decode_event_list("") == []


def test_encode_decode_is_lossless():
    events = [make_event(end_time=START + timedelta(hours=1, microseconds=5))]
    assert decode_event_list(encode_event_list(events)) == events
