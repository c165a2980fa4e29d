"""Finite-state tracking of the fixed, ordered stages of one analysis."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace

from insight_stream.schemas.stream_events import StageStatus


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StageDefinition:
    id: str
    label: str
    description: str


@dataclass(frozen=True, slots=True)
class StageState:
    definition: StageDefinition
    status: StageStatus = "pending"

    @property
    def id(self) -> str:
        return self.definition.id

    @property
    def label(self) -> str:
        return self.definition.label


class StageTracker:
    """Status of each stage in a fixed stage list.

    Stage transitions reported by the server are applied as-is: ids outside
    the known set are ignored and regressions (completed -> active) are not
    rejected.
    """

    def __init__(self, definitions: Sequence[StageDefinition]) -> None:
        if not definitions:
            raise ValueError("StageTracker requires at least one stage definition")
        ids = [definition.id for definition in definitions]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Stage ids must be unique: {ids}")
        self.definitions: tuple[StageDefinition, ...] = tuple(definitions)
        self._stages: list[StageState] = [StageState(d) for d in self.definitions]

    @property
    def stages(self) -> list[StageState]:
        """A snapshot of the current stage list."""
        return list(self._stages)

    @property
    def any_non_pending(self) -> bool:
        """True once any stage has left `pending`; progress UIs render only then."""
        return any(stage.status != "pending" for stage in self._stages)

    @property
    def active_stage(self) -> StageState | None:
        return next((s for s in self._stages if s.status == "active"), None)

    def status_of(self, stage_id: str) -> StageStatus | None:
        for stage in self._stages:
            if stage.id == stage_id:
                return stage.status
        return None

    def start(self) -> None:
        """First stage becomes active, all others pending."""
        self._stages = [
            StageState(d, "active" if index == 0 else "pending")
            for index, d in enumerate(self.definitions)
        ]

    def apply(self, stage_id: str, status: StageStatus) -> bool:
        """Set the named stage's status. Returns False if the id is unknown."""
        for index, stage in enumerate(self._stages):
            if stage.id == stage_id:
                self._stages[index] = replace(stage, status=status)
                return True
        logger.debug("Ignoring status %r for unknown stage %r", status, stage_id)
        return False

    def mark_active_as_error(self) -> StageState | None:
        """Flag the active stage (if any) as the one that failed."""
        for index, stage in enumerate(self._stages):
            if stage.status == "active":
                failed = replace(stage, status="error")
                self._stages[index] = failed
                return failed
        return None

