"""Scar registry observer - learns from failures, corrections and self-catches.

Each triggering event updates a structured registry keyed by (category, type)
and appends one line to a human-readable Markdown log.
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path

from loguru import logger
from pydantic import BaseModel, TypeAdapter

from multicomp.constants import (
    SCAR_CONFIDENCE_CAP,
    SCAR_CONFIDENCE_FLOOR,
    SCAR_CONFIDENCE_STEP,
    SCAR_LOG_HEADER,
    SCAR_LOG_PATH,
    SCAR_STORE_PATH,
)
from multicomp.observation import Observation
from multicomp.observers.base import JsonStore


class ScarEntry(BaseModel):
    id: str
    date: str
    type: str
    description: str
    category: str
    confidence: float = SCAR_CONFIDENCE_FLOOR
    occurrences: int = 1
    last_triggered: str


def scar_confidence(occurrences: int) -> float:
    return min(SCAR_CONFIDENCE_CAP, SCAR_CONFIDENCE_FLOOR + occurrences * SCAR_CONFIDENCE_STEP)


def _append_log_line(path: Path, line: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if not path.exists():
        path.write_text(SCAR_LOG_HEADER + line, encoding="utf-8")
        return
    with path.open("a", encoding="utf-8") as f:
        f.write(line)


class ScarObserver:
    id = "scar"
    name = "Scar Registry Observer"

    def __init__(self) -> None:
        self._scars: list[ScarEntry] = []
        self._store: JsonStore[list[ScarEntry]] | None = None
        self._log_path: Path | None = None
        self._dirty = False

    async def initialize(self, workspace_path: str | Path) -> None:
        root = Path(workspace_path)
        self._store = JsonStore(root.joinpath(*SCAR_STORE_PATH), TypeAdapter(list[ScarEntry]))
        self._log_path = root.joinpath(*SCAR_LOG_PATH)
        self._scars = await self._store.load([])
        self._dirty = False
        logger.debug("Scar registry loaded", entries=len(self._scars))

    async def observe(self, observation: Observation) -> None:
        obs = observation.scar
        if not obs.triggered or not obs.description:
            return

        category = obs.category or "unknown"
        scar_type = obs.type or "unknown"
        timestamp = observation.iso_timestamp

        existing = next((s for s in self._scars if s.category == category and s.type == scar_type), None)
        if existing is not None:
            existing.occurrences += 1
            existing.last_triggered = timestamp
            existing.confidence = scar_confidence(existing.occurrences)
        else:
            self._scars.append(
                ScarEntry(
                    id=f"scar-{category}-{int(time.time() * 1000)}",
                    date=timestamp.split("T")[0],
                    type=scar_type,
                    description=obs.description,
                    category=category,
                    last_triggered=timestamp,
                )
            )
        self._dirty = True

        if self._log_path is not None:
            line = f"[{timestamp}] {scar_type}: {obs.description} ({category})\n"
            await asyncio.to_thread(_append_log_line, self._log_path, line)

    async def shutdown(self) -> None:
        if self._dirty and self._store is not None:
            await self._store.save(self._scars)
            self._dirty = False

    @property
    def scars(self) -> list[ScarEntry]:
        return self._scars
