"""Map raw event-stream frames to typed stream events."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from pydantic import ValidationError

from insight_stream.schemas.stream_events import EVENT_TYPES, StreamEvent


logger = logging.getLogger(__name__)

DEFAULT_EVENT_NAME = "message"


@dataclass(frozen=True, slots=True)
class RawFrame:
    event: str
    data: str


def split_frame(frame: str) -> RawFrame:
    """Extract the event name and the newline-joined data lines of one frame."""
    event_name = DEFAULT_EVENT_NAME
    data_lines: list[str] = []
    for raw_line in frame.split("\n"):
        line = raw_line.strip()
        if not line or line.startswith(":"):
            continue
        if line.startswith("event:"):
            event_name = line[len("event:") :].strip() or DEFAULT_EVENT_NAME
        elif line.startswith("data:"):
            data_lines.append(line[len("data:") :].strip())
    return RawFrame(event=event_name, data="\n".join(data_lines))


def parse_frame(frame: str) -> StreamEvent | None:
    """Parse one frame into a stream event.

    Returns None for frames that must be skipped: no data, malformed JSON, a
    payload that does not fit its event type, or an unknown event name. This
    function never raises, so one bad frame cannot abort a session.
    """
    raw = split_frame(frame)
    if not raw.data:
        return None

    model = EVENT_TYPES.get(raw.event)
    if model is None:
        logger.debug("Ignoring unknown stream event %r", raw.event)
        return None

    try:
        payload = json.loads(raw.data)
    except json.JSONDecodeError as exc:
        logger.warning(
            "Dropping %r frame with malformed JSON: %s", raw.event, exc.msg
        )
        return None

    if not isinstance(payload, dict):
        logger.warning("Dropping %r frame: payload is not an object", raw.event)
        return None

    try:
        event: StreamEvent = model.model_validate(payload)  # type: ignore[assignment]
    except ValidationError as exc:
        logger.warning(
            "Dropping %r frame that does not match its schema: %s",
            raw.event,
            exc.error_count(),
        )
        return None
    return event
