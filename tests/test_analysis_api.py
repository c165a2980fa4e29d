"""Tests for the reference analysis endpoints (stream and synchronous)."""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator

import pytest
from fastapi import status
from httpx import AsyncClient

from insight_stream.api.v1.analysis import get_analyzer
from insight_stream.main import app
from insight_stream.schemas.stream_events import (
    ChunkEvent,
    CompleteEvent,
    EndEvent,
    ErrorEvent,
    StageEvent,
)
from insight_stream.services.analysis_stream import EventFrameDecoder, parse_frame


KEYWORD_REQUEST = {
    "keywordGroups": [
        {"id": "g1", "name": "Street food"},
        {"id": "g2", "name": "Travel vlog"},
    ],
    "dateColumns": [{"id": "d1", "config": "last7", "label": "Last 7 days"}],
    "analyticsData": {"g1": {"d1": {"views": 1200}}},
    "selectedMetrics": ["views", "watchTime"],
    "modelType": "m1",
}

CHANNEL_REQUEST = {
    "startDate": "2026-09-01",
    "endDate": "2026-09-30",
    "channelId": "UC123",
    "videos": [
        {"title": "A", "viewCount": 1000, "likeCount": 50},
        {"title": "B", "viewCount": 3000, "likeCount": 70},
    ],
    "channelStats": {"subscriberCount": 4200, "totalViews": 99000, "totalVideos": 31},
}

EXPECTED_STAGE_SEQUENCE = [
    ("prepare", "completed"),
    ("request", "active"),
    ("request", "completed"),
    ("render", "active"),
    ("render", "completed"),
]


class ExplodingAnalyzer:
    async def stream_analysis(self, kind, request) -> AsyncGenerator[str, None]:
        yield "partial "
        raise RuntimeError("Model quota exceeded")


@pytest.fixture
def exploding_analyzer():
    app.dependency_overrides[get_analyzer] = ExplodingAnalyzer
    yield
    app.dependency_overrides.pop(get_analyzer, None)


def _events(body: bytes) -> list:
    decoder = EventFrameDecoder()
    frames = decoder.feed(body) + decoder.flush()
    return [event for event in map(parse_frame, frames) if event is not None]


@pytest.mark.asyncio
async def test_keyword_stream_emits_ordered_events(async_client: AsyncClient) -> None:
    response = await async_client.post(
        "/api/analyze-keywords/stream", json=KEYWORD_REQUEST
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.headers["content-type"] == "text/event-stream; charset=utf-8"

    events = _events(response.content)
    stages = [(e.stage_id, e.status) for e in events if isinstance(e, StageEvent)]
    chunks = [e.text for e in events if isinstance(e, ChunkEvent)]
    complete = [e for e in events if isinstance(e, CompleteEvent)]

    assert stages == EXPECTED_STAGE_SEQUENCE
    assert isinstance(events[-1], EndEvent)
    assert isinstance(events[-2], CompleteEvent)
    assert len(complete) == 1
    assert complete[0].text == "".join(chunks)
    assert "Street food" in complete[0].text
    assert complete[0].metadata == {"model": "m1", "analysisKind": "keywords"}


@pytest.mark.asyncio
async def test_channel_stream_uses_default_model(async_client: AsyncClient) -> None:
    response = await async_client.post(
        "/api/analyze-channel/stream", json=CHANNEL_REQUEST
    )

    complete = [e for e in _events(response.content) if isinstance(e, CompleteEvent)]
    assert complete[0].metadata == {"model": "summary", "analysisKind": "channel"}
    assert "Total views: 4,000" in complete[0].text


@pytest.mark.asyncio
async def test_stream_reports_analyzer_failure(
    async_client: AsyncClient, exploding_analyzer
) -> None:
    response = await async_client.post(
        "/api/analyze-keywords/stream", json=KEYWORD_REQUEST
    )

    events = _events(response.content)
    assert isinstance(events[-2], ErrorEvent)
    assert events[-2].message == "Model quota exceeded"
    assert isinstance(events[-1], EndEvent)
    assert not any(isinstance(e, CompleteEvent) for e in events)


@pytest.mark.asyncio
async def test_sync_keyword_analysis(async_client: AsyncClient) -> None:
    response = await async_client.post("/api/analyze-keywords", json=KEYWORD_REQUEST)

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["success"] is True
    assert body["analysis"].startswith("## Keyword analysis")
    assert body["metadata"] == {"model": "m1", "analysisKind": "keywords"}
    assert "error" not in body


@pytest.mark.asyncio
async def test_sync_analysis_failure_returns_error_body(
    async_client: AsyncClient, exploding_analyzer
) -> None:
    response = await async_client.post("/api/analyze-channel", json=CHANNEL_REQUEST)

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"success": False, "error": "Model quota exceeded"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("path", "payload"),
    [
        ("/api/analyze-keywords/stream", {**KEYWORD_REQUEST, "keywordGroups": []}),
        ("/api/analyze-keywords", {"selectedMetrics": ["views"]}),
        ("/api/analyze-channel/stream", {"videos": []}),
        ("/api/analyze-channel", {"startDate": "2026-09-01", "endDate": "2026-09-30"}),
    ],
)
async def test_invalid_requests_are_rejected(
    async_client: AsyncClient, path: str, payload: dict
) -> None:
    response = await async_client.post(path, json=payload)

    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["error"]["type"] == "validation_error"
    assert "correlation_id" in body["error"]


@pytest.mark.asyncio
async def test_stream_frames_are_valid_json(async_client: AsyncClient) -> None:
    response = await async_client.post(
        "/api/analyze-channel/stream", json=CHANNEL_REQUEST
    )

    for block in response.text.strip().split("\n\n"):
        data_line = next(line for line in block.split("\n") if line.startswith("data: "))
        json.loads(data_line[len("data: ") :])
