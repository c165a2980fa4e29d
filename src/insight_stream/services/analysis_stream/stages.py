"""Stage templates and endpoint routes for each analysis kind."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

import httpx

from insight_stream.core.config import Settings, get_settings
from insight_stream.services.analysis_stream.controller import (
    StreamSessionController,
)
from insight_stream.services.analysis_stream.stage_tracker import StageDefinition


class AnalysisKind(StrEnum):
    KEYWORDS = "keywords"
    CHANNEL = "channel"


KEYWORD_ANALYSIS_STAGES: tuple[StageDefinition, ...] = (
    StageDefinition(
        id="prepare",
        label="Prepare report data",
        description="Collect keyword groups and per-period metrics",
    ),
    StageDefinition(
        id="request",
        label="AI generating",
        description="Send the request to the model and wait for its reply",
    ),
    StageDefinition(
        id="render",
        label="Assemble report",
        description="Apply Markdown formatting and the recommendation list",
    ),
)

CHANNEL_ANALYSIS_STAGES: tuple[StageDefinition, ...] = (
    StageDefinition(
        id="prepare",
        label="Prepare channel data",
        description="Summarize channel statistics and videos in the date range",
    ),
    StageDefinition(
        id="request",
        label="AI generating",
        description="Send the request to the model and wait for its reply",
    ),
    StageDefinition(
        id="render",
        label="Assemble report",
        description="Apply Markdown formatting to the channel diagnosis",
    ),
)


@dataclass(frozen=True, slots=True)
class AnalysisRoute:
    stream_path: str
    fallback_path: str
    stages: tuple[StageDefinition, ...]


ANALYSIS_ROUTES: dict[AnalysisKind, AnalysisRoute] = {
    AnalysisKind.KEYWORDS: AnalysisRoute(
        stream_path="analyze-keywords/stream",
        fallback_path="analyze-keywords",
        stages=KEYWORD_ANALYSIS_STAGES,
    ),
    AnalysisKind.CHANNEL: AnalysisRoute(
        stream_path="analyze-channel/stream",
        fallback_path="analyze-channel",
        stages=CHANNEL_ANALYSIS_STAGES,
    ),
}


def create_session_controller(
    kind: AnalysisKind | str,
    *,
    client: httpx.AsyncClient | None = None,
    settings: Settings | None = None,
) -> StreamSessionController:
    """Build a controller for `kind` using the configured base URL and timeouts."""
    settings = settings or get_settings()
    route = ANALYSIS_ROUTES[AnalysisKind(kind)]
    return StreamSessionController(
        stream_url=settings.endpoint_url(route.stream_path),
        fallback_url=settings.endpoint_url(route.fallback_path),
        stages=route.stages,
        client=client,
        timeout=httpx.Timeout(
            settings.STREAM_READ_TIMEOUT_SECONDS,
            connect=settings.STREAM_CONNECT_TIMEOUT_SECONDS,
        ),
        fallback_timeout=httpx.Timeout(
            settings.FALLBACK_TIMEOUT_SECONDS,
            connect=settings.STREAM_CONNECT_TIMEOUT_SECONDS,
        ),
    )
