"""Request and result schemas for AI analysis of channel/keyword data."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AnalysisResult(BaseModel):
    """Final analysis produced by a stream `complete` event or the fallback call."""

    text: str
    metadata: dict[str, Any] | None = None

    model_config = ConfigDict(frozen=True)


class FallbackResponse(BaseModel):
    """Body returned by the non-streaming analysis endpoint."""

    success: bool
    analysis: str | None = None
    metadata: dict[str, Any] | None = None
    error: str | None = None


# -----------------------------------------------------------------------------
# Request payloads (camelCase on the wire, as sent by the dashboard)
# -----------------------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        protected_namespaces=(),
    )


class KeywordGroup(_CamelModel):
    id: str
    name: str


class DateColumn(_CamelModel):
    id: str
    config: str
    label: str


class KeywordAnalysisRequest(_CamelModel):
    """Keyword-group performance comparison across date columns."""

    keyword_groups: list[KeywordGroup] = Field(..., min_length=1)
    date_columns: list[DateColumn] = Field(default_factory=list)
    analytics_data: dict[str, dict[str, Any]] = Field(default_factory=dict)
    selected_metrics: list[str] = Field(default_factory=list)
    model_type: str | None = None
    videos: list[dict[str, Any]] | None = None


class ChannelStats(_CamelModel):
    subscriber_count: int = 0
    total_views: int = 0
    total_videos: int = 0


class ChannelAnalysisRequest(_CamelModel):
    """Whole-channel performance review over a date range."""

    start_date: str = Field(..., min_length=1)
    end_date: str = Field(..., min_length=1)
    videos: list[dict[str, Any]]
    channel_id: str | None = None
    channel_stats: ChannelStats | None = None
    model_type: str | None = None
