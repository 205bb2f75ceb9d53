"""Observation parser - recovers an Observation from free-form response text.

The generator appends an `<obs>{...}</obs>` block to its response. This module
finds that block (tolerating a missing closing tag), decodes it with a few
repair strategies for common generation mistakes, and reads every field
through tolerant accessors that accept short or long key names.

`parse_observation` never raises: anything it cannot recover yields None.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from typing import Any, Mapping

from loguru import logger

from multicomp.constants import CONTEXT_PRESSURES, INITIATIVES, INTERACTION_TYPES, SESSION_CONTINUITIES
from multicomp.observation import (
    CompetenceObservation,
    GradientObservation,
    MemoryRelevanceObservation,
    Observation,
    PatternObservation,
    ScarObservation,
)
from multicomp.utils import count_words

_CLOSED_BLOCK_RE = re.compile(r"<obs>\s*(.*?)\s*</obs>", re.DOTALL)
_OPEN_BLOCK_RE = re.compile(r"<obs>\s*(.*)$", re.DOTALL)
_STRIP_BLOCK_RE = re.compile(r"<obs>.*?(?:</obs>|\Z)", re.DOTALL)
_TRAILING_BRACE_COMMA_RE = re.compile(r",\s*}")
_TRAILING_BRACKET_COMMA_RE = re.compile(r",\s*]")

_FALSY_STRINGS = frozenset({"", "false", "0", "no", "off", "null", "none"})


@dataclass(frozen=True)
class TurnContext:
    """Per-turn inputs supplied by the pipeline driver."""

    session_id: str
    turn_number: int
    user_message: str
    assistant_response: str
    chunks_in_context: int


# --- Block extraction ---


def extract_observation_block(response: str) -> str | None:
    """Return the raw payload between the observation tags, or None."""
    match = _CLOSED_BLOCK_RE.search(response)
    if match is None:
        match = _OPEN_BLOCK_RE.search(response)
    if match is None:
        return None
    payload = match.group(1).strip()
    return payload or None


def strip_observation_block(response: str) -> str:
    """Remove the observation block so the user never sees it.

    Text without a block is returned unchanged.
    """
    redacted, removed = _STRIP_BLOCK_RE.subn("", response, count=1)
    return redacted.rstrip() if removed else response


# --- Repair decoding ---


def _loads_object(raw: str) -> dict[str, Any] | None:
    try:
        decoded = json.loads(raw)
    except (ValueError, RecursionError):
        return None
    return decoded if isinstance(decoded, dict) else None


def _strip_trailing_commas(raw: str) -> str:
    return _TRAILING_BRACKET_COMMA_RE.sub("]", _TRAILING_BRACE_COMMA_RE.sub("}", raw))


def decode_payload(raw: str) -> dict[str, Any] | None:
    """Decode the block payload, repairing trailing commas and missing outer braces."""
    decoded = _loads_object(raw)
    if decoded is not None:
        return decoded

    repaired = _strip_trailing_commas(raw)
    decoded = _loads_object(repaired)
    if decoded is not None:
        logger.debug("Observation payload decoded after trailing-comma repair")
        return decoded

    decoded = _loads_object("{" + repaired + "}")
    if decoded is not None:
        logger.debug("Observation payload decoded after wrapping in braces")
    return decoded


# --- Tolerant accessors ---


def _lookup(obj: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    """First non-null value among the key aliases (short key first)."""
    for key in keys:
        value = obj.get(key)
        if value is not None:
            return value
    return None


def read_str(obj: Mapping[str, Any], *keys: str, default: str | None = None) -> str | None:
    value = _lookup(obj, keys)
    if value is None:
        return default
    if isinstance(value, bool):
        return "true" if value else "false"
    text = str(value)
    return text if text else default


def read_num(obj: Mapping[str, Any], *keys: str, default: float = 0.0) -> float:
    value = _lookup(obj, keys)
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return default
    return number if math.isfinite(number) else default


def read_bool(obj: Mapping[str, Any], *keys: str, default: bool = False) -> bool:
    value = _lookup(obj, keys)
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() not in _FALSY_STRINGS
    return bool(value)


def read_str_list(obj: Mapping[str, Any], *keys: str) -> list[str]:
    value = _lookup(obj, keys)
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None]


def read_str_map(obj: Mapping[str, Any], *keys: str) -> dict[str, str]:
    value = _lookup(obj, keys)
    if not isinstance(value, dict):
        return {}
    return {str(k): str(v) for k, v in value.items()}


def read_choice(obj: Mapping[str, Any], *keys: str, choices: tuple[str, ...]) -> str:
    """Enumerated field; values outside `choices` fall back to the first choice."""
    value = read_str(obj, *keys)
    if value is not None:
        value = value.strip().lower()
        if value in choices:
            return value
    return choices[0]


def _section(parsed: Mapping[str, Any], *keys: str) -> Mapping[str, Any]:
    value = _lookup(parsed, keys)
    return value if isinstance(value, dict) else {}


# --- Sub-observation decoders ---


def _decode_pattern(p: Mapping[str, Any]) -> PatternObservation:
    return PatternObservation(
        matched=read_bool(p, "m", "matched"),
        pattern_id=read_str(p, "pid", "pattern_id"),
        tool_used=read_str(p, "t", "tool_used"),
        parameters=read_str_map(p, "pa", "parameters"),
        intent=read_str(p, "i", "intent", default="unknown") or "unknown",
        similarity=read_num(p, "s", "similarity"),
    )


def _decode_scar(s: Mapping[str, Any]) -> ScarObservation:
    return ScarObservation(
        triggered=read_bool(s, "t", "triggered"),
        type=read_str(s, "ty", "type"),
        description=read_str(s, "d", "description"),
        category=read_str(s, "c", "category"),
    )


def _decode_competence(co: Mapping[str, Any]) -> CompetenceObservation:
    signal = read_str(co, "si", "signal")
    return CompetenceObservation(
        domain=read_str(co, "d", "domain", default="general") or "general",
        signal=signal.strip().lower() if signal else None,
        initiative=read_choice(co, "in", "initiative", choices=INITIATIVES),  # type: ignore[arg-type]
        complexity=read_num(co, "cx", "complexity", default=1.0),
    )


def _decode_gradient(g: Mapping[str, Any], user_message: str) -> GradientObservation:
    return GradientObservation(
        person=read_str(g, "pe", "person"),
        user_message_length=count_words(user_message),
        session_continuity=read_choice(g, "sc", "session_continuity", choices=SESSION_CONTINUITIES),  # type: ignore[arg-type]
        sentiment=read_num(g, "se", "sentiment"),
        interaction_type=read_choice(g, "it", "interaction_type", choices=INTERACTION_TYPES),  # type: ignore[arg-type]
    )


def _decode_memory(me: Mapping[str, Any], chunks_in_context: int) -> MemoryRelevanceObservation:
    referenced = int(read_num(me, "cr", "chunks_referenced"))
    return MemoryRelevanceObservation(
        chunks_in_context=max(0, chunks_in_context),
        chunks_referenced=max(0, referenced),
        skills_used=read_str_list(me, "su", "skills_used"),
        context_pressure=read_choice(me, "cp", "context_pressure", choices=CONTEXT_PRESSURES),  # type: ignore[arg-type]
    )


def parse_observation(turn: TurnContext) -> Observation | None:
    """Parse the observation block of a turn into a typed Observation.

    Returns None when the block is absent or cannot be decoded.
    """
    raw = extract_observation_block(turn.assistant_response)
    if raw is None:
        logger.debug("No observation block in response", session_id=turn.session_id, turn=turn.turn_number)
        return None

    parsed = decode_payload(raw)
    if parsed is None:
        logger.debug("Observation block unparseable", session_id=turn.session_id, turn=turn.turn_number)
        return None

    try:
        return Observation(
            session_id=turn.session_id,
            turn_number=turn.turn_number,
            pattern=_decode_pattern(_section(parsed, "p", "pattern")),
            scar=_decode_scar(_section(parsed, "s", "scar")),
            competence=_decode_competence(_section(parsed, "co", "competence")),
            gradient=_decode_gradient(_section(parsed, "g", "gradient"), turn.user_message),
            memory=_decode_memory(_section(parsed, "me", "memory"), turn.chunks_in_context),
        )
    except Exception as exc:  # pylint: disable=broad-exception-caught
        logger.warning("Observation decode failed", session_id=turn.session_id, turn=turn.turn_number, error=str(exc))
        return None
