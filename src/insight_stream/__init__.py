"""Incremental consumer for streamed AI analysis results."""

from insight_stream.services.analysis_stream import (
    AnalysisKind,
    SessionHandle,
    SessionState,
    StreamSessionController,
    create_session_controller,
)


__all__ = [
    "AnalysisKind",
    "SessionHandle",
    "SessionState",
    "StreamSessionController",
    "create_session_controller",
]
