"""Stream session controller: one in-flight analysis request per instance.

The controller issues the streaming POST, feeds the body through the frame
decoder and event parser, and applies every decoded event to the session
state in arrival order. When the streaming route answers 404 before any byte
is read, the same request body is handed to the fallback orchestrator.

All failures end at this boundary. Callers observe them as
`SessionState.error` plus the stage that was active when it happened; no
exception is raised to the caller. Cancellation is silent.
"""

from __future__ import annotations

import asyncio
import json
import uuid
from collections.abc import Callable, Mapping, Sequence
from typing import Any

import httpx
from pydantic import BaseModel

from insight_stream.core.error_handler import StructuredLogger, correlation_scope
from insight_stream.core.exceptions import (
    AnalysisStreamError,
    ServerReportedError,
    StreamNotAvailable,
    StreamTruncatedError,
    TransportError,
)
from insight_stream.schemas.analysis import AnalysisResult
from insight_stream.schemas.stream_events import (
    ChunkEvent,
    CompleteEvent,
    EndEvent,
    ErrorEvent,
    StageEvent,
    StreamEvent,
)
from insight_stream.services.analysis_stream.decoder import EventFrameDecoder
from insight_stream.services.analysis_stream.fallback import FallbackOrchestrator
from insight_stream.services.analysis_stream.parser import parse_frame
from insight_stream.services.analysis_stream.session import (
    SessionHandle,
    SessionState,
    StateListener,
)
from insight_stream.services.analysis_stream.stage_tracker import StageDefinition


structured_logger = StructuredLogger(__name__)

STREAM_HEADERS = {"Content-Type": "application/json", "Accept": "text/event-stream"}

AnalysisRequest = Mapping[str, Any] | BaseModel


def encode_request(request: AnalysisRequest) -> bytes:
    """Serialize a request once; the same bytes feed the stream and the fallback."""
    if isinstance(request, BaseModel):
        return request.model_dump_json(by_alias=True, exclude_none=True).encode()
    return json.dumps(dict(request), ensure_ascii=False).encode("utf-8")


class StreamSessionController:
    """Runs analysis sessions against one streaming endpoint and its fallback."""

    def __init__(
        self,
        *,
        stream_url: str,
        fallback_url: str,
        stages: Sequence[StageDefinition],
        client: httpx.AsyncClient | None = None,
        timeout: httpx.Timeout | float | None = None,
        fallback_timeout: httpx.Timeout | float | None = None,
    ) -> None:
        if not stages:
            raise ValueError("At least one stage definition is required")
        self.stream_url = stream_url
        self.fallback_url = fallback_url
        self.stages: tuple[StageDefinition, ...] = tuple(stages)
        self.timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()
        self._fallback = FallbackOrchestrator(
            self._client, fallback_url, timeout=fallback_timeout
        )
        self._listeners: list[StateListener] = []
        self._active: SessionHandle | None = None
        self._closed = False

    async def __aenter__(self) -> StreamSessionController:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    @property
    def active_session(self) -> SessionHandle | None:
        return self._active

    @property
    def state(self) -> SessionState | None:
        """State of the current (or most recent) session."""
        return self._active.state if self._active is not None else None

    def add_listener(self, listener: StateListener) -> Callable[[], None]:
        """Register a state listener for sessions started after this call."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def start(self, request: AnalysisRequest) -> SessionHandle:
        """Cancel any running session and start a new one for `request`.

        Must be called from a running event loop. Returns immediately; the
        returned handle's state already shows the first stage as active.
        """
        if self._closed:
            raise RuntimeError("StreamSessionController is closed")
        body = encode_request(request)
        self.cancel()

        handle = SessionHandle(uuid.uuid4().hex, self.stages, self._listeners)
        self._active = handle
        handle.attach(asyncio.create_task(self._run(handle, body)))
        return handle

    async def run(self, request: AnalysisRequest) -> SessionState:
        """Start a session and wait for it to settle."""
        return await self.start(request).wait()

    def cancel(self) -> bool:
        """Cancel the running session, if any. Idempotent."""
        handle = self._active
        if handle is None:
            return False
        return handle.cancel()

    async def aclose(self) -> None:
        """Tear down: cancel the running session and release the HTTP client."""
        if self._closed:
            return
        self._closed = True
        handle = self._active
        if handle is not None:
            handle.cancel()
            await handle.wait()
        if self._owns_client:
            await self._client.aclose()

    # -- Session task --------------------------------------------------------

    async def _run(self, handle: SessionHandle, body: bytes) -> None:
        with correlation_scope(handle.session_id):
            structured_logger.info("Analysis session started", url=self.stream_url)
            try:
                try:
                    await self._stream(handle, body)
                except StreamNotAvailable:
                    if handle.cancelled:
                        return
                    structured_logger.info(
                        "Streaming endpoint not found; using fallback",
                        url=self.fallback_url,
                    )
                    await self._fallback.run(handle, body)
            except asyncio.CancelledError:
                structured_logger.info("Analysis session cancelled")
                raise
            except AnalysisStreamError as exc:
                cause = exc.__cause__
                structured_logger.error(
                    "Analysis session failed",
                    error_code=exc.error_code,
                    error=exc.message,
                    exception_type=type(cause or exc).__name__,
                    detail=str(cause) if cause is not None else None,
                )
                handle.fail(exc)
            except Exception as exc:  # noqa: BLE001 - nothing escapes the controller
                structured_logger.exception(
                    "Unexpected analysis session failure",
                    exception_type=type(exc).__name__,
                )
                handle.fail(TransportError(str(exc) or "Analysis failed"))
            finally:
                if handle.cancelled:
                    structured_logger.info("Analysis session released after cancel")
                else:
                    structured_logger.info(
                        "Analysis session settled",
                        success=handle.state.result is not None,
                        used_fallback=handle.state.used_fallback,
                    )
                handle.finish()

    async def _stream(self, handle: SessionHandle, body: bytes) -> None:
        try:
            async with self._client.stream(
                "POST",
                self.stream_url,
                content=body,
                headers=STREAM_HEADERS,
                timeout=self.timeout,
            ) as response:
                if response.status_code == 404:
                    raise StreamNotAvailable()
                if not response.is_success:
                    raise TransportError(
                        "Unable to establish the analysis stream "
                        f"(HTTP {response.status_code})"
                    )
                handle.begin_streaming()
                await self._consume(handle, response)
        except httpx.HTTPError as exc:
            if handle.state.is_streaming:
                message = "Connection lost while streaming the analysis"
            else:
                message = "Unable to establish the analysis stream"
            raise TransportError(message) from exc

        if not handle.cancelled and not handle.state.settled:
            raise StreamTruncatedError()

    async def _consume(self, handle: SessionHandle, response: httpx.Response) -> None:
        """Read until a terminal event, end-of-stream, or cancellation."""
        decoder = EventFrameDecoder()
        try:
            async for chunk in response.aiter_bytes():
                if handle.cancelled:
                    return
                for frame in decoder.feed(chunk):
                    if self._dispatch(handle, frame) or handle.cancelled:
                        return
            for frame in decoder.flush():
                if self._dispatch(handle, frame) or handle.cancelled:
                    return
        finally:
            decoder.reset()

    def _dispatch(self, handle: SessionHandle, frame: str) -> bool:
        """Apply one frame to the session. Returns True when reading must stop."""
        event: StreamEvent | None = parse_frame(frame)
        if event is None:
            return False
        if isinstance(event, StageEvent):
            handle.apply_stage(event.stage_id, event.status)
        elif isinstance(event, ChunkEvent):
            handle.append_text(event.text)
        elif isinstance(event, CompleteEvent):
            handle.succeed(AnalysisResult(text=event.text, metadata=event.metadata))
            return True
        elif isinstance(event, ErrorEvent):
            structured_logger.warning("Server reported analysis error")
            handle.fail(ServerReportedError(event.message))
            return True
        elif isinstance(event, EndEvent):
            return True
        return False
