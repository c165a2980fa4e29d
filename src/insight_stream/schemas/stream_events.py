"""Typed events carried by the analysis event stream.

One server-sent frame maps to exactly one event. The event *name* travels on
the frame's `event:` line and selects the model; the JSON on the `data:` lines
is validated against that model. Producer and consumer share these models so
the wire format cannot drift between the two sides.
"""

from __future__ import annotations

from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


StageStatus = Literal["pending", "active", "completed", "error"]

MAX_SSE_EVENT_BYTES: int = 262_144


class _StreamEventBase(BaseModel):
    event_name: ClassVar[str]

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_sse(self) -> str:
        """Serialize the event as an `event:`/`data:` frame with size validation."""
        payload = self.model_dump_json(by_alias=True, exclude_none=True)
        if len(payload.encode("utf-8")) > MAX_SSE_EVENT_BYTES:
            raise ValueError("SSE payload exceeded MAX_SSE_EVENT_BYTES")
        return f"event: {self.event_name}\ndata: {payload}\n\n"


class StageEvent(_StreamEventBase):
    """Server-reported status change of one named stage."""

    event_name: ClassVar[str] = "stage"

    stage_id: str = Field(..., alias="id", min_length=1)
    status: StageStatus


class ChunkEvent(_StreamEventBase):
    """Incremental text fragment appended to the live buffer."""

    event_name: ClassVar[str] = "chunk"

    text: str = ""


class CompleteEvent(_StreamEventBase):
    """Authoritative final text; supersedes every chunk received before it."""

    event_name: ClassVar[str] = "complete"

    text: str
    metadata: dict[str, Any] | None = None


class ErrorEvent(_StreamEventBase):
    event_name: ClassVar[str] = "error"

    message: str = "Streaming analysis failed"

    @field_validator("message", mode="before")
    @classmethod
    def default_blank_message(cls, v: object) -> object:
        if v is None or (isinstance(v, str) and not v.strip()):
            return "Streaming analysis failed"
        return v


class EndEvent(_StreamEventBase):
    """Stream close marker."""

    event_name: ClassVar[str] = "end"


StreamEvent = StageEvent | ChunkEvent | CompleteEvent | ErrorEvent | EndEvent

EVENT_TYPES: dict[str, type[_StreamEventBase]] = {
    model.event_name: model
    for model in (StageEvent, ChunkEvent, CompleteEvent, ErrorEvent, EndEvent)
}
