"""Memory relevance observer - which loaded context and skills were used."""

from __future__ import annotations

from pathlib import Path

from loguru import logger
from pydantic import BaseModel, Field, TypeAdapter

from multicomp.constants import MEMORY_STATS_PATH
from multicomp.observation import Observation
from multicomp.observers.base import JsonStore


class PressureCounts(BaseModel):
    low: int = 0
    medium: int = 0
    high: int = 0


class MemoryStats(BaseModel):
    total_turns: int = 0
    total_chunks_loaded: int = 0
    total_chunks_referenced: int = 0
    utilization_rate: float = 0.0  # referenced / loaded
    skill_usage: dict[str, int] = Field(default_factory=dict)
    pressure_counts: PressureCounts = Field(default_factory=PressureCounts)


class MemoryObserver:
    id = "memory"
    name = "Memory Relevance Observer"

    def __init__(self) -> None:
        self._stats = MemoryStats()
        self._store: JsonStore[MemoryStats] | None = None
        self._dirty = False

    async def initialize(self, workspace_path: str | Path) -> None:
        self._store = JsonStore(Path(workspace_path).joinpath(*MEMORY_STATS_PATH), TypeAdapter(MemoryStats))
        self._stats = await self._store.load(MemoryStats())
        self._dirty = False
        logger.debug("Memory stats loaded", total_turns=self._stats.total_turns)

    async def observe(self, observation: Observation) -> None:
        obs = observation.memory
        stats = self._stats

        stats.total_turns += 1
        stats.total_chunks_loaded += obs.chunks_in_context
        stats.total_chunks_referenced += obs.chunks_referenced
        if stats.total_chunks_loaded > 0:
            stats.utilization_rate = stats.total_chunks_referenced / stats.total_chunks_loaded

        for skill in obs.skills_used:
            stats.skill_usage[skill] = stats.skill_usage.get(skill, 0) + 1

        pressure = obs.context_pressure
        setattr(stats.pressure_counts, pressure, getattr(stats.pressure_counts, pressure) + 1)

        self._dirty = True

    async def shutdown(self) -> None:
        if self._dirty and self._store is not None:
            await self._store.save(self._stats)
            self._dirty = False

    @property
    def stats(self) -> MemoryStats:
        return self._stats

    def utilization_rate(self) -> float:
        return round(self._stats.utilization_rate, 2)
