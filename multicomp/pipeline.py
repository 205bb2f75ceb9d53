"""Pipeline driver - host hook entry points and per-session state.

The host runtime calls `on_turn_start` before each agent run and
`on_turn_end` afterwards. All per-session state (registry, turn counter,
initialized flag) lives on an explicit `PipelineContext` owned by the host
integration.

Turn flow:
  on_turn_start → prompt text prepended to system context
  on_turn_end   → last assistant text → parse → emit → flush → reload
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from loguru import logger

from multicomp.config import MulticompConfig, resolve_workspace
from multicomp.constants import CHARS_PER_TOKEN, TOKENS_PER_CHUNK
from multicomp.observation import Observation
from multicomp.observers import CompetenceObserver, GradientObserver, MemoryObserver, PatternObserver, ScarObserver
from multicomp.observers.base import Observer
from multicomp.parser import TurnContext, parse_observation, strip_observation_block
from multicomp.prompt import minimal_observation_prompt, observation_prompt
from multicomp.registry import ObserverRegistry

Message = Mapping[str, Any]


@dataclass
class PipelineContext:
    config: MulticompConfig = field(default_factory=MulticompConfig)
    host_workspace: str | None = None
    registry: ObserverRegistry | None = None
    turn_counter: int = 0
    initialized: bool = False


@dataclass
class TurnStartResult:
    prepend_context: str


@dataclass
class TurnEndResult:
    redacted_text: str | None = None
    observation: Observation | None = None


@dataclass
class PipelineStatus:
    initialized: bool
    observer_count: int
    turns_observed: int
    observer_ids: list[str]


def build_default_observers(config: MulticompConfig) -> list[Observer]:
    observers: list[Observer] = [
        PatternObserver(reset_streak_on_switch=config.observers.pattern.reset_streak_on_switch),
        ScarObserver(),
        CompetenceObserver(),
        GradientObserver(),
        MemoryObserver(),
    ]
    disabled = set(config.observers.disabled)
    return [o for o in observers if o.id not in disabled]


async def ensure_initialized(context: PipelineContext) -> ObserverRegistry:
    """Build and initialize the registry on first use."""
    if context.initialized and context.registry is not None:
        return context.registry

    registry = ObserverRegistry(resolve_workspace(context.config, context.host_workspace))
    for observer in build_default_observers(context.config):
        registry.register(observer)
    await registry.initialize_all()

    context.registry = registry
    context.initialized = True
    logger.info(
        "Initialized observers",
        count=registry.count,
        ids=registry.ids,
        workspace=str(registry.workspace_path),
    )
    return registry


async def on_turn_start(context: PipelineContext) -> TurnStartResult:
    await ensure_initialized(context)
    context.turn_counter += 1
    prompt = minimal_observation_prompt() if context.config.minimal_prompt else observation_prompt()
    return TurnStartResult(prepend_context=prompt)


def message_text(message: Message | None) -> str:
    """Text of a message: plain string content, or its text segments joined."""
    if not message:
        return ""
    content = message.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            str(block.get("text", ""))
            for block in content
            if isinstance(block, Mapping) and block.get("type") == "text"
        )
    return ""


def last_message(messages: Sequence[Message], role: str) -> Message | None:
    for message in reversed(messages):
        if message.get("role") == role:
            return message
    return None


def count_chunks_in_context(messages: Sequence[Message]) -> int:
    """Estimate memory chunks in context from the size of system messages."""
    total_length = 0
    for message in messages:
        if message.get("role") != "system":
            continue
        content = message.get("content")
        text = content if isinstance(content, str) else json.dumps(content)
        total_length += len(text)
    # Half rounds up.
    return int(total_length / (CHARS_PER_TOKEN * TOKENS_PER_CHUNK) + 0.5)


async def on_turn_end(
    context: PipelineContext,
    messages: Sequence[Message],
    success: bool,
    session_id: str | None = None,
) -> TurnEndResult:
    """Parse the finished turn and fan it out. Never raises into the host turn."""
    registry = context.registry
    if registry is None or not context.initialized or not success:
        return TurnEndResult()

    redacted: str | None = None
    try:
        assistant_text = message_text(last_message(messages, "assistant"))
        if not assistant_text:
            return TurnEndResult()
        redacted = strip_observation_block(assistant_text)

        turn = TurnContext(
            session_id=session_id or "unknown",
            turn_number=context.turn_counter,
            user_message=message_text(last_message(messages, "user")),
            assistant_response=assistant_text,
            chunks_in_context=count_chunks_in_context(messages),
        )
        observation = parse_observation(turn)
        if observation is None:
            return TurnEndResult(redacted_text=redacted)

        await registry.emit(observation)
        await registry.shutdown_all()
        await registry.initialize_all()
        return TurnEndResult(redacted_text=redacted, observation=observation)
    except Exception as exc:  # pylint: disable=broad-exception-caught
        logger.error("Turn-end observation failed", session_id=session_id, error=str(exc))
        return TurnEndResult(redacted_text=redacted)


def status(context: PipelineContext) -> PipelineStatus:
    registry = context.registry
    return PipelineStatus(
        initialized=context.initialized,
        observer_count=registry.count if registry else 0,
        turns_observed=context.turn_counter,
        observer_ids=registry.ids if registry else [],
    )


async def stop(context: PipelineContext) -> None:
    """Flush every observer before process exit."""
    if context.registry is None:
        return
    await context.registry.shutdown_all()
    logger.info("All observers flushed to disk")
