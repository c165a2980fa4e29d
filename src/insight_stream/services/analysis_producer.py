"""Reference producer for the analysis event stream.

The dashboard's analysis endpoints wrap an AI provider. The provider itself is
opaque here: anything implementing `AnalyzerProtocol` can be plugged in. The
default `SummaryAnalyzer` renders a deterministic Markdown digest of the
request so the endpoints and the consumer can be exercised without a model.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator, AsyncIterator
from typing import Any, Protocol

from insight_stream.core.config import get_settings
from insight_stream.schemas.analysis import (
    ChannelAnalysisRequest,
    FallbackResponse,
    KeywordAnalysisRequest,
)
from insight_stream.schemas.stream_events import (
    ChunkEvent,
    CompleteEvent,
    EndEvent,
    ErrorEvent,
    StageEvent,
)


logger = logging.getLogger(__name__)

AnalysisPayload = KeywordAnalysisRequest | ChannelAnalysisRequest

DEFAULT_MODEL = "summary"


class AnalyzerProtocol(Protocol):
    """Protocol for analysis backends producing text incrementally."""

    def stream_analysis(
        self, kind: str, request: AnalysisPayload
    ) -> AsyncIterator[str]:
        """Yield the analysis text in fragments."""
        ...


class SummaryAnalyzer:
    """Deterministic Markdown digest of the request; no model involved."""

    async def stream_analysis(
        self, kind: str, request: AnalysisPayload
    ) -> AsyncGenerator[str, None]:
        if isinstance(request, KeywordAnalysisRequest):
            lines = _keyword_summary(request)
        else:
            lines = _channel_summary(request)
        for line in lines:
            yield f"{line}\n"


def _keyword_summary(request: KeywordAnalysisRequest) -> list[str]:
    lines = ["## Keyword analysis", ""]
    metrics = ", ".join(request.selected_metrics) or "none selected"
    lines.append(f"Metrics: {metrics}")
    periods = ", ".join(column.label for column in request.date_columns)
    lines.append(f"Periods: {periods or 'none'}")
    lines.append("")
    for group in request.keyword_groups:
        group_data = request.analytics_data.get(group.id, {})
        lines.append(f"- **{group.name}**: {len(group_data)} period(s) with data")
    return lines


def _channel_summary(request: ChannelAnalysisRequest) -> list[str]:
    total_views = sum(int(v.get("viewCount") or 0) for v in request.videos)
    total_likes = sum(int(v.get("likeCount") or 0) for v in request.videos)
    average = total_views / len(request.videos) if request.videos else 0
    lines = [
        "## Channel diagnosis",
        "",
        f"Range: {request.start_date} to {request.end_date}",
        f"Videos: {len(request.videos)}",
        f"Total views: {total_views:,}",
        f"Total likes: {total_likes:,}",
        f"Average views per video: {round(average):,}",
    ]
    if request.channel_stats is not None:
        lines.append(f"Subscribers: {request.channel_stats.subscriber_count:,}")
    return lines


def _metadata(kind: str, request: AnalysisPayload) -> dict[str, Any]:
    return {"model": request.model_type or DEFAULT_MODEL, "analysisKind": kind}


async def build_analysis_stream(
    kind: str,
    request: AnalysisPayload,
    analyzer: AnalyzerProtocol,
) -> AsyncGenerator[str, None]:
    """Emit the stage/chunk/complete/end frames for one analysis."""
    delay = get_settings().PRODUCER_CHUNK_DELAY_SECONDS

    yield StageEvent(stage_id="prepare", status="completed").to_sse()
    yield StageEvent(stage_id="request", status="active").to_sse()

    fragments: list[str] = []
    try:
        async for fragment in analyzer.stream_analysis(kind, request):
            if not fragment:
                continue
            fragments.append(fragment)
            yield ChunkEvent(text=fragment).to_sse()
            if delay:
                await asyncio.sleep(delay)
    except Exception as exc:  # noqa: BLE001 - reported to the client as an event
        logger.exception("Analyzer failed while streaming %s analysis", kind)
        yield ErrorEvent(message=str(exc) or "Analysis failed").to_sse()
        yield EndEvent().to_sse()
        return

    yield StageEvent(stage_id="request", status="completed").to_sse()
    yield StageEvent(stage_id="render", status="active").to_sse()
    text = "".join(fragments)
    yield StageEvent(stage_id="render", status="completed").to_sse()
    yield CompleteEvent(text=text, metadata=_metadata(kind, request)).to_sse()
    yield EndEvent().to_sse()


async def run_analysis(
    kind: str,
    request: AnalysisPayload,
    analyzer: AnalyzerProtocol,
) -> FallbackResponse:
    """Collect the whole analysis for the non-streaming endpoint."""
    try:
        fragments = [f async for f in analyzer.stream_analysis(kind, request)]
    except Exception as exc:  # noqa: BLE001 - reported in the response body
        logger.exception("Analyzer failed for %s analysis", kind)
        return FallbackResponse(success=False, error=str(exc) or "Analysis failed")
    return FallbackResponse(
        success=True,
        analysis="".join(fragments),
        metadata=_metadata(kind, request),
    )
