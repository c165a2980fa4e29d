"""Synchronous (non-streaming) analysis request used when streaming is absent."""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from insight_stream.core.exceptions import FallbackError, TransportError
from insight_stream.schemas.analysis import AnalysisResult, FallbackResponse
from insight_stream.services.analysis_stream.session import SessionHandle


logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}


class FallbackOrchestrator:
    """Issue the analysis request once against the non-streaming endpoint.

    No incremental progress is observable on this path, so the stage list is
    advanced around the single request: `prepare` done and `request` active
    while waiting, then `request` done and `render` run once the body arrives.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        *,
        timeout: httpx.Timeout | float | None = None,
    ) -> None:
        self.client = client
        self.url = url
        self.timeout = timeout

    async def run(
        self, handle: SessionHandle, body: bytes
    ) -> AnalysisResult | None:
        """Return the result, or None when the session was cancelled first."""
        stage_ids = [stage.id for stage in handle.state.stages]

        handle.enter_fallback()
        handle.restart_stages()
        _advance(handle, stage_ids, 0)
        if handle.cancelled:
            return None

        try:
            response = await self.client.post(
                self.url,
                content=body,
                headers=JSON_HEADERS,
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            raise TransportError("Unable to reach the analysis service") from exc

        outcome = self._parse(response)
        if not response.is_success or not outcome.success:
            logger.warning(
                "Fallback analysis rejected (HTTP %s): %s",
                response.status_code,
                outcome.error,
            )
            raise FallbackError(outcome.error or "Analysis request failed")
        if outcome.analysis is None:
            raise FallbackError("Analysis service returned no analysis text")

        result = AnalysisResult(text=outcome.analysis, metadata=outcome.metadata)
        _advance(handle, stage_ids, 1)
        handle.succeed(result)
        for stage_id in stage_ids[2:]:
            handle.apply_stage(stage_id, "completed")
        return result

    @staticmethod
    def _parse(response: httpx.Response) -> FallbackResponse:
        try:
            return FallbackResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.warning(
                "Fallback response was not a valid analysis body (HTTP %s): %s",
                response.status_code,
                type(exc).__name__,
            )
            if not response.is_success:
                raise FallbackError(
                    f"Analysis request failed (HTTP {response.status_code})"
                ) from exc
            raise FallbackError(
                "Analysis service returned an invalid response"
            ) from exc


def _advance(handle: SessionHandle, stage_ids: list[str], index: int) -> None:
    """Complete stage `index` and activate the one after it."""
    if index < len(stage_ids):
        handle.apply_stage(stage_ids[index], "completed")
    if index + 1 < len(stage_ids):
        handle.apply_stage(stage_ids[index + 1], "active")
