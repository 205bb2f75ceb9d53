"""multicomp - one observation per agent turn, fanned out to many observers."""

from multicomp.observation import (
    CompetenceObservation,
    GradientObservation,
    MemoryRelevanceObservation,
    Observation,
    PatternObservation,
    ScarObservation,
)
from multicomp.parser import TurnContext, parse_observation, strip_observation_block
from multicomp.pipeline import PipelineContext, on_turn_end, on_turn_start, status, stop
from multicomp.registry import ObserverRegistry

__all__ = [
    "Observation",
    "PatternObservation",
    "ScarObservation",
    "CompetenceObservation",
    "GradientObservation",
    "MemoryRelevanceObservation",
    "TurnContext",
    "parse_observation",
    "strip_observation_block",
    "ObserverRegistry",
    "PipelineContext",
    "on_turn_start",
    "on_turn_end",
    "status",
    "stop",
]
