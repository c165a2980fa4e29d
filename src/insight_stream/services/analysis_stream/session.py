"""Observable state and handle of one analysis session."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from insight_stream.core.exceptions import AnalysisStreamError
from insight_stream.schemas.analysis import AnalysisResult
from insight_stream.schemas.stream_events import StageStatus
from insight_stream.services.analysis_stream.stage_tracker import (
    StageDefinition,
    StageState,
    StageTracker,
)


logger = logging.getLogger(__name__)

StateListener = Callable[["SessionState"], None]


@dataclass
class SessionState:
    """Caller-visible state of one session.

    A new instance is created for every session; instances are never reused.
    """

    session_id: str
    stages: list[StageState] = field(default_factory=list)
    live_text: str = ""
    result: AnalysisResult | None = None
    error: str | None = None
    error_code: str | None = None
    is_streaming: bool = False
    is_active: bool = False
    used_fallback: bool = False

    @property
    def settled(self) -> bool:
        return self.result is not None or self.error is not None

    @property
    def show_progress(self) -> bool:
        return any(stage.status != "pending" for stage in self.stages)


class SessionHandle:
    """Handle on one in-flight session.

    The controller that created the handle is the only writer of its state.
    Once `cancel()` has been called every write becomes a no-op, so nothing
    arriving after the cancellation point can reach the state or listeners.
    """

    def __init__(
        self,
        session_id: str,
        definitions: Sequence[StageDefinition],
        listeners: Sequence[StateListener] = (),
    ) -> None:
        self.session_id = session_id
        self._tracker = StageTracker(definitions)
        self._listeners = list(listeners)
        self._cancelled = False
        self._task: asyncio.Task[None] | None = None

        self._tracker.start()
        self.state = SessionState(
            session_id=session_id,
            stages=self._tracker.stages,
            is_active=True,
        )

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return (
            f"SessionHandle(id={self.session_id!r}, cancelled={self._cancelled}, "
            f"done={self.done})"
        )

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def attach(self, task: asyncio.Task[None]) -> None:
        self._task = task

    def cancel(self) -> bool:
        """Stop the session silently. Returns False if there was nothing to stop."""
        if self._cancelled or self.done or not self.state.is_active:
            return False
        self._cancelled = True
        self.state.is_streaming = False
        self.state.is_active = False
        self._notify_listeners()
        # A listener may cancel from inside the session task; the read loop
        # checks `cancelled` after every event and exits on its own then.
        if self._task is not None and self._task is not asyncio.current_task():
            self._task.cancel()
        return True

    async def wait(self) -> SessionState:
        """Wait until the session settles or is cancelled; return its state."""
        if self._task is not None:
            await asyncio.wait({self._task})
        return self.state

    # -- Mutations (controller and fallback orchestrator only) --------------

    def begin_streaming(self) -> None:
        if self._cancelled:
            return
        self.state.is_streaming = True
        self._changed()

    def restart_stages(self) -> None:
        if self._cancelled:
            return
        self._tracker.start()
        self._changed(stages=True)

    def apply_stage(self, stage_id: str, status: StageStatus) -> None:
        if self._cancelled:
            return
        if self._tracker.apply(stage_id, status):
            self._changed(stages=True)

    def append_text(self, text: str) -> None:
        if self._cancelled or not text:
            return
        self.state.live_text += text
        self._changed()

    def enter_fallback(self) -> None:
        if self._cancelled:
            return
        self.state.live_text = ""
        self.state.is_streaming = False
        self.state.used_fallback = True
        self._changed()

    def succeed(self, result: AnalysisResult) -> None:
        if self._cancelled or self.state.settled:
            return
        self.state.result = result
        self.state.live_text = ""
        self.state.is_streaming = False
        self._changed()

    def fail(self, exc: AnalysisStreamError) -> None:
        if self._cancelled or self.state.settled:
            return
        self.state.error = exc.message
        self.state.error_code = exc.error_code
        self.state.is_streaming = False
        self._tracker.mark_active_as_error()
        self._changed(stages=True)

    def finish(self) -> None:
        """Leave the active state once the session task is over."""
        if self._cancelled:
            return
        self.state.is_streaming = False
        self.state.is_active = False
        self._changed()

    def _changed(self, *, stages: bool = False) -> None:
        if stages:
            self.state.stages = self._tracker.stages
        self._notify_listeners()

    def _notify_listeners(self) -> None:
        for listener in self._listeners:
            try:
                listener(self.state)
            except Exception:  # noqa: BLE001 - a listener must not abort the session
                logger.exception("Session state listener failed")
