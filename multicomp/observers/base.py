"""Observer contract and the JSON state store shared by stateful observers."""

from __future__ import annotations

import asyncio
import json
import shutil
from pathlib import Path
from typing import Generic, Protocol, TypeVar, runtime_checkable

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from multicomp.observation import Observation
from multicomp.utils import write_json_atomic

T = TypeVar("T")


@runtime_checkable
class Observer(Protocol):
    """Anything that consumes observations and keeps its own durable model.

    `initialize(workspace_path)` and `shutdown()` are optional; the registry
    calls them only when an observer defines them.
    """

    id: str
    name: str

    async def observe(self, observation: Observation) -> None: ...


class JsonStore(Generic[T]):
    """One JSON document on disk, validated into `T` on load.

    A missing or unreadable file is a fresh store. A file that fails to decode or validate
    is also treated as fresh, but is copied aside to `<name>.corrupt` first so
    the next flush does not destroy the only copy.
    """

    def __init__(self, path: Path, adapter: TypeAdapter[T]) -> None:
        self.path = path
        self._adapter = adapter

    async def load(self, default: T) -> T:
        return await asyncio.to_thread(self._load_sync, default)

    async def save(self, value: T) -> None:
        data = self._adapter.dump_python(value, mode="json")
        await asyncio.to_thread(self._save_sync, data)

    def _load_sync(self, default: T) -> T:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("No stored state, starting fresh", path=str(self.path))
            return default
        except OSError as exc:
            logger.warning("Stored state is unreadable, starting fresh", path=str(self.path), error=str(exc))
            return default

        try:
            return self._adapter.validate_python(json.loads(raw))
        except (ValueError, ValidationError) as exc:
            backup = self.path.with_name(self.path.name + ".corrupt")
            shutil.copyfile(self.path, backup)
            logger.warning(
                "Stored state is corrupt, starting fresh", path=str(self.path), backup=str(backup), error=str(exc)
            )
            return default

    def _save_sync(self, data: object) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        write_json_atomic(self.path, data)
