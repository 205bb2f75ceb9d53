"""Gradient observer - append-only log of communication data points.

Only raw signals are stored here, one JSON line per turn. The rate-of-change
computation runs elsewhere as a periodic batch over the log, so prior history
is never loaded into memory.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

from pydantic import BaseModel

from multicomp.constants import GRADIENT_LOG_PATH
from multicomp.observation import Observation


class GradientDataPoint(BaseModel):
    timestamp: str
    person: str | None
    message_length: int
    sentiment: float
    interaction_type: str
    session_continuity: str


def _append_line(path: Path, line: str) -> None:
    with path.open("a", encoding="utf-8") as f:
        f.write(line)


class GradientObserver:
    id = "gradient"
    name = "Gradient Tracker Observer"

    def __init__(self) -> None:
        self._data_path: Path | None = None

    async def initialize(self, workspace_path: str | Path) -> None:
        self._data_path = Path(workspace_path).joinpath(*GRADIENT_LOG_PATH)
        await asyncio.to_thread(self._data_path.parent.mkdir, parents=True, exist_ok=True)

    async def observe(self, observation: Observation) -> None:
        if self._data_path is None:
            raise RuntimeError("GradientObserver used before initialize()")

        obs = observation.gradient
        point = GradientDataPoint(
            timestamp=observation.iso_timestamp,
            person=obs.person,
            message_length=obs.user_message_length,
            sentiment=obs.sentiment,
            interaction_type=obs.interaction_type,
            session_continuity=obs.session_continuity,
        )
        line = json.dumps(point.model_dump(), separators=(",", ":")) + "\n"
        await asyncio.to_thread(_append_line, self._data_path, line)

    @property
    def data_path(self) -> Path | None:
        return self._data_path
