"""Observation record - one structured readout per conversational turn.

A single turn produces one `Observation` with five sub-observations, each
consumed by a different observer. Records are immutable once built and are
never persisted themselves; only the observers' derived state is.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from multicomp.constants import COMPLEXITY_RANGE, SENTIMENT_RANGE, SIMILARITY_RANGE
from multicomp.utils import isoformat_z, utc_now

Initiative = Literal["user", "agent"]
SessionContinuity = Literal["continuation", "new_topic", "new_session"]
InteractionType = Literal["routine", "creative", "problem_solving", "social"]
ContextPressure = Literal["low", "medium", "high"]


def _clamp(value: float, bounds: tuple[float, float]) -> float:
    low, high = bounds
    return max(low, min(high, value))


class PatternObservation(BaseModel):
    """Was this turn a repeat of a known trigger → action pattern?"""

    model_config = ConfigDict(frozen=True)

    matched: bool = False
    pattern_id: str | None = None
    tool_used: str | None = None
    parameters: dict[str, str] = Field(default_factory=dict)
    intent: str = "unknown"
    similarity: float = 0.0

    @field_validator("similarity", mode="before")
    @classmethod
    def clamp_similarity(cls, v: object) -> float:
        return _clamp(float(v), SIMILARITY_RANGE)  # type: ignore[arg-type]


class ScarObservation(BaseModel):
    """Did something go wrong this turn (correction, tool error, self-catch)?"""

    model_config = ConfigDict(frozen=True)

    triggered: bool = False
    type: str | None = None
    description: str | None = None
    category: str | None = None


class CompetenceObservation(BaseModel):
    """How did the user respond, and in which domain?"""

    model_config = ConfigDict(frozen=True)

    domain: str = "general"
    signal: str | None = None
    initiative: Initiative = "user"
    complexity: float = 1.0

    @field_validator("complexity", mode="before")
    @classmethod
    def clamp_complexity(cls, v: object) -> float:
        if v is None:
            return COMPLEXITY_RANGE[0]
        return _clamp(float(v), COMPLEXITY_RANGE)  # type: ignore[arg-type]


class GradientObservation(BaseModel):
    """One communication data point for rate-of-change tracking."""

    model_config = ConfigDict(frozen=True)

    person: str | None = None
    user_message_length: int = 0
    session_continuity: SessionContinuity = "continuation"
    sentiment: float = 0.0
    interaction_type: InteractionType = "routine"

    @field_validator("sentiment", mode="before")
    @classmethod
    def clamp_sentiment(cls, v: object) -> float:
        return _clamp(float(v), SENTIMENT_RANGE)  # type: ignore[arg-type]


class MemoryRelevanceObservation(BaseModel):
    """Which of the loaded context was actually used."""

    model_config = ConfigDict(frozen=True)

    chunks_in_context: int = 0
    chunks_referenced: int = 0
    skills_used: list[str] = Field(default_factory=list)
    context_pressure: ContextPressure = "low"


class Observation(BaseModel):
    """The complete per-turn record fanned out to every observer."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=utc_now)
    session_id: str
    turn_number: int
    pattern: PatternObservation = Field(default_factory=PatternObservation)
    scar: ScarObservation = Field(default_factory=ScarObservation)
    competence: CompetenceObservation = Field(default_factory=CompetenceObservation)
    gradient: GradientObservation = Field(default_factory=GradientObservation)
    memory: MemoryRelevanceObservation = Field(default_factory=MemoryRelevanceObservation)

    @field_serializer("timestamp")
    def serialize_timestamp(self, value: datetime) -> str:
        return isoformat_z(value)

    @property
    def iso_timestamp(self) -> str:
        return isoformat_z(self.timestamp)
