"""Observer registry - owns the observer set and fans observations out."""

from __future__ import annotations

import asyncio
from pathlib import Path

from loguru import logger

from multicomp.observation import Observation
from multicomp.observers.base import Observer


async def _deliver(observer: Observer, observation: Observation) -> None:
    await observer.observe(observation)


class ObserverRegistry:
    """Sequences observer lifecycle and delivers each observation to every observer.

    One failing observer never stops the others: lifecycle calls are isolated
    per observer, and `emit` settles every observer before returning.
    """

    def __init__(self, workspace_path: str | Path) -> None:
        self._workspace_path = Path(workspace_path)
        self._observers: dict[str, Observer] = {}

    @property
    def workspace_path(self) -> Path:
        return self._workspace_path

    def register(self, observer: Observer) -> None:
        if observer.id in self._observers:
            logger.warning("Observer already registered, replacing", observer=observer.id)
        self._observers[observer.id] = observer

    def unregister(self, observer_id: str) -> None:
        self._observers.pop(observer_id, None)

    def get(self, observer_id: str) -> Observer | None:
        return self._observers.get(observer_id)

    async def initialize_all(self) -> None:
        for observer in list(self._observers.values()):
            initialize = getattr(observer, "initialize", None)
            if initialize is None:
                continue
            try:
                await initialize(self._workspace_path)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                logger.error("Failed to initialize observer", observer=observer.id, error=str(exc))

    async def emit(self, observation: Observation) -> None:
        """Deliver one observation to all observers concurrently; wait for all to settle."""
        observers = list(self._observers.values())
        if not observers:
            return

        results = await asyncio.gather(*[_deliver(o, observation) for o in observers], return_exceptions=True)

        for observer, result in zip(observers, results):
            if isinstance(result, BaseException):
                logger.error(
                    "Observer failed",
                    observer=observer.id,
                    turn=observation.turn_number,
                    error=repr(result),
                )

    async def shutdown_all(self) -> None:
        for observer in list(self._observers.values()):
            shutdown = getattr(observer, "shutdown", None)
            if shutdown is None:
                continue
            try:
                await shutdown()
            except Exception as exc:  # pylint: disable=broad-exception-caught
                logger.error("Failed to shutdown observer", observer=observer.id, error=str(exc))

    @property
    def count(self) -> int:
        return len(self._observers)

    @property
    def ids(self) -> list[str]:
        return list(self._observers.keys())
