"""Analysis endpoints: streamed (SSE) and synchronous variants."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, StreamingResponse

from insight_stream.schemas.analysis import (
    ChannelAnalysisRequest,
    FallbackResponse,
    KeywordAnalysisRequest,
)
from insight_stream.services.analysis_producer import (
    AnalysisPayload,
    AnalyzerProtocol,
    SummaryAnalyzer,
    build_analysis_stream,
    run_analysis,
)
from insight_stream.services.analysis_stream.stages import AnalysisKind


router = APIRouter(tags=["analysis"])

SSE_HEADERS = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}


def get_analyzer() -> AnalyzerProtocol:
    """Analyzer dependency; override to plug in a real AI provider."""
    return SummaryAnalyzer()


def _stream_response(
    kind: AnalysisKind, payload: AnalysisPayload, analyzer: AnalyzerProtocol
) -> StreamingResponse:
    return StreamingResponse(
        build_analysis_stream(kind.value, payload, analyzer),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


async def _sync_response(
    kind: AnalysisKind, payload: AnalysisPayload, analyzer: AnalyzerProtocol
) -> JSONResponse:
    outcome = await run_analysis(kind.value, payload, analyzer)
    return JSONResponse(
        status_code=200 if outcome.success else 500,
        content=outcome.model_dump(exclude_none=True),
    )


@router.post(
    "/analyze-keywords/stream",
    summary="Stream keyword analysis via Server-Sent Events",
)
async def analyze_keywords_stream(
    payload: KeywordAnalysisRequest,
    analyzer: Annotated[AnalyzerProtocol, Depends(get_analyzer)],
) -> StreamingResponse:
    """Event names: stage, chunk, complete, error, end (JSON on `data:` lines)."""
    return _stream_response(AnalysisKind.KEYWORDS, payload, analyzer)


@router.post("/analyze-keywords", response_model=FallbackResponse)
async def analyze_keywords(
    payload: KeywordAnalysisRequest,
    analyzer: Annotated[AnalyzerProtocol, Depends(get_analyzer)],
) -> JSONResponse:
    return await _sync_response(AnalysisKind.KEYWORDS, payload, analyzer)


@router.post(
    "/analyze-channel/stream",
    summary="Stream channel analysis via Server-Sent Events",
)
async def analyze_channel_stream(
    payload: ChannelAnalysisRequest,
    analyzer: Annotated[AnalyzerProtocol, Depends(get_analyzer)],
) -> StreamingResponse:
    return _stream_response(AnalysisKind.CHANNEL, payload, analyzer)


@router.post("/analyze-channel", response_model=FallbackResponse)
async def analyze_channel(
    payload: ChannelAnalysisRequest,
    analyzer: Annotated[AnalyzerProtocol, Depends(get_analyzer)],
) -> JSONResponse:
    return await _sync_response(AnalysisKind.CHANNEL, payload, analyzer)
