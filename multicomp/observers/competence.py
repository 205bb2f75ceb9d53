"""Competence observer - per-domain tally of how the user responds."""

from __future__ import annotations

from pathlib import Path

from loguru import logger
from pydantic import BaseModel, TypeAdapter

from multicomp.constants import COMPETENCE_SIGNALS, COMPETENCE_STORE_PATH
from multicomp.observation import Observation
from multicomp.observers.base import JsonStore


class DomainSignals(BaseModel):
    domain: str
    accept: int = 0
    modify: int = 0
    reject: int = 0
    defer: int = 0
    rework: int = 0
    total: int = 0
    avg_complexity: float = 0.0
    last_signal: str = ""


class CompetenceObserver:
    id = "competence"
    name = "User Competence Observer"

    def __init__(self) -> None:
        self._domains: dict[str, DomainSignals] = {}
        self._store: JsonStore[list[DomainSignals]] | None = None
        self._dirty = False

    async def initialize(self, workspace_path: str | Path) -> None:
        self._store = JsonStore(
            Path(workspace_path).joinpath(*COMPETENCE_STORE_PATH), TypeAdapter(list[DomainSignals])
        )
        loaded = await self._store.load([])
        self._domains = {d.domain: d for d in loaded}
        self._dirty = False
        logger.debug("Competence signals loaded", domains=len(self._domains))

    async def observe(self, observation: Observation) -> None:
        obs = observation.competence
        if not obs.signal or not obs.domain:
            return

        record = self._domains.get(obs.domain)
        if record is None:
            record = DomainSignals(domain=obs.domain)
            self._domains[obs.domain] = record

        # Unrecognized signals still count toward the total.
        if obs.signal in COMPETENCE_SIGNALS:
            setattr(record, obs.signal, getattr(record, obs.signal) + 1)
        else:
            logger.debug("Unrecognized competence signal", signal=obs.signal, domain=obs.domain)
        record.total += 1
        record.last_signal = observation.iso_timestamp
        record.avg_complexity = (record.avg_complexity * (record.total - 1) + obs.complexity) / record.total

        self._dirty = True

    async def shutdown(self) -> None:
        if self._dirty and self._store is not None:
            await self._store.save(list(self._domains.values()))
            self._dirty = False

    @property
    def domains(self) -> dict[str, DomainSignals]:
        return self._domains

    def acceptance_rate(self, domain: str) -> float:
        """Share of signals in `domain` that were plain accepts, 2 dp."""
        record = self._domains.get(domain)
        if record is None or record.total == 0:
            return 0.0
        return round(record.accept / record.total, 2)
