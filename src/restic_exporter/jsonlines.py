"""Line-delimited JSON decoding of captured restic output."""

from typing import Any, Iterator, List, Tuple
import json

from .errors import DecodeError


def iter_json_lines(data: bytes) -> Iterator[Tuple[int, Any]]:
    """Yield (line_number, value) for each line of ``data``.

    Empty lines are skipped; a line holding only whitespace is invalid.
    Line numbers are 1-based and count empty lines, so they match what
    restic actually wrote. A trailing ``\\r`` is dropped from each line.

    Raises:
        DecodeError: On the first line that is not valid JSON
    """
    for number, raw in enumerate(data.split(b"\n"), start=1):
        line = raw.rstrip(b"\r")
        if not line:
            continue
        try:
            yield number, json.loads(line)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DecodeError(
                f"invalid JSON: {e}",
                line_number=number,
                line=line.decode("utf-8", errors="replace"),
            ) from e


def decode_json_lines(data: bytes) -> List[Any]:
    """Decode every line of ``data``; all or nothing."""
    return [value for _, value in iter_json_lines(data)]


def decode_json_document(data: bytes) -> Any:
    """Decode ``data`` as a single JSON document.

    Raises:
        DecodeError: If the buffer is empty or not one valid JSON value
    """
    if not data.strip():
        raise DecodeError("expected a JSON document but output was empty")
    try:
        return json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DecodeError(
            f"invalid JSON document: {e}",
            line=data.decode("utf-8", errors="replace"),
        ) from e
