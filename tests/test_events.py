"""Tests for backup event discrimination and decoding."""

import json

import pytest

from restic_exporter.errors import DecodeError, UnknownMessageTypeError
from restic_exporter.events import (
    StatusEvent,
    SummaryEvent,
    decode_backup_events,
    decode_event,
    validate_backup_stream,
)

from tests.fixtures.restic_output import (
    BACKUP_STDOUT,
    SNAPSHOT_ID,
    STATUS_MIDWAY,
    STATUS_START,
    SUMMARY,
    jsonl,
)


class TestDecodeEvent:

    def test_status(self):
        event = decode_event(STATUS_MIDWAY)
        assert isinstance(event, StatusEvent)
        assert event.percent_done == 0.5
        assert event.files_done == 1
        assert event.bytes_done == 14
        assert event.current_files == ["/data/file_2"]

    def test_status_omitted_counters_default_to_zero(self):
        event = decode_event(STATUS_START)
        assert isinstance(event, StatusEvent)
        assert event.files_done == 0
        assert event.bytes_done == 0
        assert event.total_files == 3

    def test_status_requires_percent_done(self):
        with pytest.raises(DecodeError, match="status"):
            decode_event({"message_type": "status", "total_files": 3})

    def test_summary(self):
        event = decode_event(SUMMARY)
        assert isinstance(event, SummaryEvent)
        assert event.files_new == 3
        assert event.total_bytes_processed == 54
        assert event.total_duration == pytest.approx(0.312)
        assert event.snapshot_id == SNAPSHOT_ID

    def test_summary_without_snapshot_id(self):
        raw = {k: v for k, v in SUMMARY.items() if k != "snapshot_id"}
        assert decode_event(raw).snapshot_id is None

    def test_summary_missing_counter(self):
        raw = {k: v for k, v in SUMMARY.items() if k != "files_new"}
        with pytest.raises(DecodeError, match="summary"):
            decode_event(raw, line_number=7)

    def test_summary_wrong_type(self):
        with pytest.raises(DecodeError):
            decode_event({**SUMMARY, "data_blobs": "many"})

    def test_negative_counter_rejected(self):
        with pytest.raises(DecodeError):
            decode_event({**SUMMARY, "files_new": -1})

    def test_extra_fields_ignored(self):
        event = decode_event({**STATUS_MIDWAY, "something_new": True})
        assert isinstance(event, StatusEvent)

    def test_unknown_message_type(self):
        with pytest.raises(UnknownMessageTypeError) as exc_info:
            decode_event({"message_type": "unknown"}, line_number=3)
        assert exc_info.value.message_type == "unknown"
        assert exc_info.value.line_number == 3

    def test_missing_message_type(self):
        with pytest.raises(UnknownMessageTypeError) as exc_info:
            decode_event({"percent_done": 0.5})
        assert exc_info.value.message_type is None

    def test_non_string_message_type(self):
        with pytest.raises(UnknownMessageTypeError):
            decode_event({"message_type": 1})

    def test_unknown_type_is_not_a_decode_error(self):
        with pytest.raises(UnknownMessageTypeError) as exc_info:
            decode_event({"message_type": "verbose_status"})
        assert not isinstance(exc_info.value, DecodeError)

    def test_non_object(self):
        with pytest.raises(DecodeError, match="object"):
            decode_event(["status"])


class TestDecodeBackupEvents:

    def test_order_preserved(self):
        events = decode_backup_events(BACKUP_STDOUT)
        assert [type(e) for e in events] == [StatusEvent, StatusEvent, SummaryEvent]
        assert events[0].percent_done == 0
        assert events[1].percent_done == 0.5

    def test_partial_events_attached_on_bad_line(self):
        stdout = jsonl(STATUS_START, STATUS_MIDWAY) + b"garbage\n" + jsonl(SUMMARY)
        with pytest.raises(DecodeError) as exc_info:
            decode_backup_events(stdout)
        assert exc_info.value.line_number == 3
        assert len(exc_info.value.events) == 2

    def test_partial_events_attached_on_unknown_type(self):
        stdout = jsonl(STATUS_START, {"message_type": "unknown"}, SUMMARY)
        with pytest.raises(UnknownMessageTypeError) as exc_info:
            decode_backup_events(stdout)
        assert exc_info.value.line_number == 2
        assert [type(e) for e in exc_info.value.events] == [StatusEvent]

    def test_empty_output(self):
        assert decode_backup_events(b"") == []


class TestValidateBackupStream:

    def test_summary_last(self):
        events = decode_backup_events(BACKUP_STDOUT)
        summary = validate_backup_stream(events)
        assert summary is events[-1]

    def test_summary_only(self):
        events = decode_backup_events(jsonl(SUMMARY))
        assert validate_backup_stream(events).files_new == 3

    def test_no_summary(self):
        events = decode_backup_events(jsonl(STATUS_START, STATUS_MIDWAY))
        with pytest.raises(DecodeError, match="no summary"):
            validate_backup_stream(events)

    def test_two_summaries(self):
        events = decode_backup_events(jsonl(SUMMARY, SUMMARY))
        with pytest.raises(DecodeError, match="2 summaries"):
            validate_backup_stream(events)

    def test_summary_not_last(self):
        events = decode_backup_events(jsonl(SUMMARY, STATUS_MIDWAY))
        with pytest.raises(DecodeError, match="not the last"):
            validate_backup_stream(events)


def test_events_serialise_with_tag():
    event = decode_event(SUMMARY)
    assert json.loads(event.model_dump_json())["message_type"] == "summary"
