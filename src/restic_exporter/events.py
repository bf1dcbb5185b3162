"""Typed events from `restic backup --json`.

Each output line is a JSON object tagged with ``message_type``. The tag
selects the concrete model; the same object is then validated against
that model. The set of tags is closed: an unknown or missing tag raises
UnknownMessageTypeError instead of being skipped, so a restic upgrade
that changes the output format is noticed.
"""

from typing import Any, Dict, List, Literal, Optional, Type, Union
import json

from pydantic import BaseModel, Field, NonNegativeInt, ValidationError

from .constants import MESSAGE_TYPE_STATUS, MESSAGE_TYPE_SUMMARY
from .errors import DecodeError, UnknownMessageTypeError
from .jsonlines import iter_json_lines


class StatusEvent(BaseModel):
    """Progress report emitted while a backup is running.

    restic omits zero-valued counters, so only ``percent_done`` is required.
    """
    message_type: Literal["status"] = MESSAGE_TYPE_STATUS
    percent_done: float = Field(..., ge=0)
    total_files: NonNegativeInt = 0
    files_done: NonNegativeInt = 0
    total_bytes: NonNegativeInt = 0
    bytes_done: NonNegativeInt = 0
    seconds_elapsed: Optional[NonNegativeInt] = None
    seconds_remaining: Optional[NonNegativeInt] = None
    error_count: Optional[NonNegativeInt] = None
    current_files: List[str] = Field(default_factory=list)


class SummaryEvent(BaseModel):
    """End-of-run summary; exactly one per successful backup, always last."""
    message_type: Literal["summary"] = MESSAGE_TYPE_SUMMARY
    files_new: NonNegativeInt
    files_changed: NonNegativeInt
    files_unmodified: NonNegativeInt
    dirs_new: NonNegativeInt
    dirs_changed: NonNegativeInt
    dirs_unmodified: NonNegativeInt
    data_blobs: NonNegativeInt
    tree_blobs: NonNegativeInt
    data_added: NonNegativeInt
    data_added_packed: NonNegativeInt
    total_files_processed: NonNegativeInt
    total_bytes_processed: NonNegativeInt
    total_duration: float = Field(..., ge=0)
    snapshot_id: Optional[str] = None  # absent for --dry-run


BackupEvent = Union[StatusEvent, SummaryEvent]

EVENT_TYPES: Dict[str, Type[BaseModel]] = {
    MESSAGE_TYPE_STATUS: StatusEvent,
    MESSAGE_TYPE_SUMMARY: SummaryEvent,
}


def decode_event(raw: Any, line_number: Optional[int] = None) -> BackupEvent:
    """Turn one decoded JSON value into a StatusEvent or SummaryEvent.

    Args:
        raw: Value produced by the line decoder
        line_number: Source line, for error messages

    Returns:
        The concrete event

    Raises:
        UnknownMessageTypeError: If message_type is missing or not recognised
        DecodeError: If the value is not an object or fails validation
    """
    if not isinstance(raw, dict):
        raise DecodeError(
            f"expected a JSON object, got {type(raw).__name__}",
            line_number=line_number,
            line=json.dumps(raw),
        )

    message_type = raw.get("message_type")
    model = EVENT_TYPES.get(message_type) if isinstance(message_type, str) else None
    if model is None:
        raise UnknownMessageTypeError(message_type, line_number=line_number)

    try:
        return model.model_validate(raw)
    except ValidationError as e:
        raise DecodeError(
            f"malformed {message_type} event: {e}",
            line_number=line_number,
            line=json.dumps(raw),
        ) from e


def decode_backup_events(stdout: bytes) -> List[BackupEvent]:
    """Decode captured backup output into an ordered event list.

    On failure the events decoded before the bad line are attached to the
    raised error as ``events``.
    """
    events: List[BackupEvent] = []
    try:
        for number, raw in iter_json_lines(stdout):
            events.append(decode_event(raw, line_number=number))
    except (DecodeError, UnknownMessageTypeError) as e:
        e.events = events
        raise
    return events


def validate_backup_stream(events: List[BackupEvent]) -> SummaryEvent:
    """Check that ``events`` ends with its only SummaryEvent and return it.

    Raises:
        DecodeError: If there is no summary, more than one, or it is not last
    """
    summaries = [i for i, ev in enumerate(events) if isinstance(ev, SummaryEvent)]
    if not summaries:
        raise DecodeError("backup output contained no summary", events=events)
    if len(summaries) > 1:
        raise DecodeError(
            f"backup output contained {len(summaries)} summaries", events=events
        )
    if summaries[0] != len(events) - 1:
        raise DecodeError("backup summary was not the last event", events=events)
    return events[-1]
