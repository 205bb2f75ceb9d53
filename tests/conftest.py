"""Pytest configuration for multicomp tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from loguru import logger

from multicomp.observation import (
    CompetenceObservation,
    GradientObservation,
    MemoryRelevanceObservation,
    Observation,
    PatternObservation,
    ScarObservation,
)

logger.remove()


def pytest_collection_modifyitems(config, items):
    """Set per-marker timeouts: unit=2s, integration=5s."""
    for item in items:
        if "unit" in item.keywords:
            item.add_marker(pytest.mark.timeout(2))
        elif "integration" in item.keywords:
            item.add_marker(pytest.mark.timeout(5))


@pytest.fixture
def log_records():  # type: ignore[no-untyped-def]
    """Capture loguru records emitted during a test."""
    records: list[dict[str, Any]] = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    root = tmp_path / "workspace"
    root.mkdir()
    return root


def make_observation(
    *,
    turn_number: int = 1,
    session_id: str = "sess-1",
    pattern: dict[str, Any] | None = None,
    scar: dict[str, Any] | None = None,
    competence: dict[str, Any] | None = None,
    gradient: dict[str, Any] | None = None,
    memory: dict[str, Any] | None = None,
) -> Observation:
    return Observation(
        session_id=session_id,
        turn_number=turn_number,
        pattern=PatternObservation(**(pattern or {})),
        scar=ScarObservation(**(scar or {})),
        competence=CompetenceObservation(**(competence or {})),
        gradient=GradientObservation(**(gradient or {})),
        memory=MemoryRelevanceObservation(**(memory or {})),
    )


@pytest.fixture
def observation_factory():  # type: ignore[no-untyped-def]
    return make_observation
