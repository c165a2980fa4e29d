"""Incremental consumer for the AI analysis event stream.

Exposes the session controller and the pieces it is built from so callers
(and tests) can use the decoder, parser or stage tracker on their own.
"""

from .controller import StreamSessionController, encode_request
from .decoder import EventFrameDecoder
from .fallback import FallbackOrchestrator
from .parser import parse_frame
from .session import SessionHandle, SessionState
from .stage_tracker import StageDefinition, StageState, StageTracker
from .stages import (
    ANALYSIS_ROUTES,
    CHANNEL_ANALYSIS_STAGES,
    KEYWORD_ANALYSIS_STAGES,
    AnalysisKind,
    create_session_controller,
)


__all__ = [
    "ANALYSIS_ROUTES",
    "CHANNEL_ANALYSIS_STAGES",
    "KEYWORD_ANALYSIS_STAGES",
    "AnalysisKind",
    "EventFrameDecoder",
    "FallbackOrchestrator",
    "SessionHandle",
    "SessionState",
    "StageDefinition",
    "StageState",
    "StageTracker",
    "StreamSessionController",
    "create_session_controller",
    "encode_request",
    "parse_frame",
]
