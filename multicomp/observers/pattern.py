"""Pattern cache observer - habituation over repeated (intent, tool) actions."""

from __future__ import annotations

import json
import time
from pathlib import Path

from loguru import logger
from pydantic import BaseModel, Field, TypeAdapter

from multicomp.constants import (
    PATTERN_ACTIVE_THRESHOLD,
    PATTERN_CACHE_PATH,
    PATTERN_CONFIDENCE_CAP,
    PATTERN_CONFIDENCE_PRIOR,
    PATTERN_HIGH_THRESHOLD,
    PATTERN_MAX_EXAMPLES,
    PATTERN_STREAK_CAP,
)
from multicomp.observation import Observation
from multicomp.observers.base import JsonStore


class PatternEntry(BaseModel):
    id: str
    intent: str
    tool: str
    param_keys: list[str] = Field(default_factory=list)
    examples: list[str] = Field(default_factory=list)
    times_observed: int = 1
    times_fired: int = 0
    times_corrected: int = 0
    confidence: float = 0.0
    last_observed: str = ""
    streak: int = 1


class PatternMetrics(BaseModel):
    active: int
    high_confidence: int
    avg_confidence: float


def parameter_signature(parameters: dict[str, str]) -> str:
    return json.dumps(parameters, separators=(",", ":"))


def pattern_confidence(times_observed: int, streak: int) -> float:
    """Saturating confidence: n / (n + 10) plus a small capped streak bonus."""
    base = times_observed / (times_observed + PATTERN_CONFIDENCE_PRIOR)
    streak_bonus = min(streak, PATTERN_STREAK_CAP) * 0.02
    return min(PATTERN_CONFIDENCE_CAP, base + 0.05 * streak_bonus)


class PatternObserver:
    id = "pattern"
    name = "Pattern Cache Observer"

    def __init__(self, reset_streak_on_switch: bool = False) -> None:
        self._reset_streak_on_switch = reset_streak_on_switch
        self._patterns: list[PatternEntry] = []
        self._store: JsonStore[list[PatternEntry]] | None = None
        self._dirty = False

    async def initialize(self, workspace_path: str | Path) -> None:
        self._store = JsonStore(Path(workspace_path).joinpath(*PATTERN_CACHE_PATH), TypeAdapter(list[PatternEntry]))
        self._patterns = await self._store.load([])
        self._dirty = False
        logger.debug("Pattern cache loaded", entries=len(self._patterns))

    async def observe(self, observation: Observation) -> None:
        obs = observation.pattern
        if not obs.tool_used:
            return

        existing = self._find(obs.intent, obs.tool_used)
        if self._reset_streak_on_switch:
            for entry in self._patterns:
                if entry is not existing:
                    entry.streak = 0

        if existing is not None:
            existing.times_observed += 1
            existing.last_observed = observation.iso_timestamp
            existing.streak += 1
            existing.confidence = pattern_confidence(existing.times_observed, existing.streak)

            signature = parameter_signature(obs.parameters)
            if signature not in existing.examples and len(existing.examples) < PATTERN_MAX_EXAMPLES:
                existing.examples.append(signature)
        else:
            self._patterns.append(
                PatternEntry(
                    id=f"{obs.intent}-{obs.tool_used}-{int(time.time() * 1000)}",
                    intent=obs.intent,
                    tool=obs.tool_used,
                    param_keys=list(obs.parameters.keys()),
                    examples=[parameter_signature(obs.parameters)],
                    last_observed=observation.iso_timestamp,
                )
            )

        self._dirty = True

    async def shutdown(self) -> None:
        if self._dirty and self._store is not None:
            await self._store.save(self._patterns)
            self._dirty = False

    @property
    def patterns(self) -> list[PatternEntry]:
        return self._patterns

    def metrics(self) -> PatternMetrics:
        return compute_pattern_metrics(self._patterns)

    def _find(self, intent: str, tool: str) -> PatternEntry | None:
        for entry in self._patterns:
            if entry.intent == intent and entry.tool == tool:
                return entry
        return None


def compute_pattern_metrics(patterns: list[PatternEntry]) -> PatternMetrics:
    active = [p for p in patterns if p.confidence > PATTERN_ACTIVE_THRESHOLD]
    high = [p for p in active if p.confidence > PATTERN_HIGH_THRESHOLD]
    avg = sum(p.confidence for p in active) / len(active) if active else 0.0
    return PatternMetrics(active=len(active), high_confidence=len(high), avg_confidence=round(avg, 2))
