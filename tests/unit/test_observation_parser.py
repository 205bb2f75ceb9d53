"""Tests for observation block extraction, repair decoding and field coercion."""

from __future__ import annotations

import json

import pytest

from multicomp.parser import (
    TurnContext,
    decode_payload,
    extract_observation_block,
    parse_observation,
    read_bool,
    read_num,
    read_str,
    read_str_list,
    read_str_map,
    strip_observation_block,
)

pytestmark = pytest.mark.unit


def _turn(response: str, user_message: str = "please add the meeting", chunks: int = 3) -> TurnContext:
    return TurnContext(
        session_id="sess-42",
        turn_number=7,
        user_message=user_message,
        assistant_response=response,
        chunks_in_context=chunks,
    )


FULL_PAYLOAD = {
    "p": {"m": True, "pid": "p-1", "t": "calendar.create", "pa": {"title": "Standup", "day": 2}, "i": "create_event", "s": 0.8},
    "s": {"t": True, "ty": "user_correction", "d": "Wrong day picked", "c": "assumption"},
    "co": {"d": "calendar", "si": "modify", "in": "agent", "cx": 3},
    "g": {"pe": "alice", "sc": "new_topic", "se": 0.5, "it": "problem_solving"},
    "me": {"cr": 2, "su": ["calendar-skill"], "cp": "medium"},
}


def test_parse_closed_block_with_short_keys():
    response = f"Done, the meeting is booked.\n<obs>{json.dumps(FULL_PAYLOAD)}</obs>"

    obs = parse_observation(_turn(response))

    assert obs is not None
    assert obs.session_id == "sess-42"
    assert obs.turn_number == 7
    assert obs.pattern.matched is True
    assert obs.pattern.pattern_id == "p-1"
    assert obs.pattern.tool_used == "calendar.create"
    assert obs.pattern.parameters == {"title": "Standup", "day": "2"}
    assert obs.pattern.intent == "create_event"
    assert obs.pattern.similarity == pytest.approx(0.8)
    assert obs.scar.triggered is True
    assert obs.scar.type == "user_correction"
    assert obs.scar.category == "assumption"
    assert obs.competence.domain == "calendar"
    assert obs.competence.signal == "modify"
    assert obs.competence.initiative == "agent"
    assert obs.competence.complexity == 3
    assert obs.gradient.person == "alice"
    assert obs.gradient.session_continuity == "new_topic"
    assert obs.gradient.interaction_type == "problem_solving"
    assert obs.memory.chunks_referenced == 2
    assert obs.memory.skills_used == ["calendar-skill"]
    assert obs.memory.context_pressure == "medium"


def test_parse_long_keys():
    payload = {
        "pattern": {"tool_used": "search", "intent": "lookup", "similarity": 0.2},
        "scar": {"triggered": False},
        "competence": {"domain": "research", "signal": "accept", "complexity": 2},
        "gradient": {"sentiment": -0.3, "session_continuity": "new_session"},
        "memory": {"chunks_referenced": 1, "skills_used": ["web"], "context_pressure": "high"},
    }

    obs = parse_observation(_turn(f"<obs>{json.dumps(payload)}</obs>"))

    assert obs is not None
    assert obs.pattern.tool_used == "search"
    assert obs.pattern.intent == "lookup"
    assert obs.competence.signal == "accept"
    assert obs.gradient.sentiment == pytest.approx(-0.3)
    assert obs.gradient.session_continuity == "new_session"
    assert obs.memory.skills_used == ["web"]
    assert obs.memory.context_pressure == "high"


def test_short_key_wins_over_long_key():
    payload = {"p": {"t": "short-tool", "tool_used": "long-tool", "s": 0, "similarity": 0.9}}

    obs = parse_observation(_turn(f"<obs>{json.dumps(payload)}</obs>"))

    assert obs is not None
    assert obs.pattern.tool_used == "short-tool"
    assert obs.pattern.similarity == 0.0


def test_out_of_range_numbers_are_clamped():
    payload = {"p": {"s": 7}, "co": {"cx": 99}, "g": {"se": -5}}

    obs = parse_observation(_turn(f"<obs>{json.dumps(payload)}</obs>"))

    assert obs is not None
    assert obs.pattern.similarity == 1.0
    assert obs.competence.complexity == 5
    assert obs.gradient.sentiment == -1.0


def test_complexity_defaults_to_one_when_missing_or_non_numeric():
    missing = parse_observation(_turn("<obs>{}</obs>"))
    garbage = parse_observation(_turn('<obs>{"co": {"cx": "very hard"}}</obs>'))

    assert missing is not None and missing.competence.complexity == 1
    assert garbage is not None and garbage.competence.complexity == 1


def test_defaults_when_sections_missing():
    obs = parse_observation(_turn("<obs>{}</obs>"))

    assert obs is not None
    assert obs.pattern.tool_used is None
    assert obs.pattern.intent == "unknown"
    assert obs.pattern.parameters == {}
    assert obs.scar.triggered is False
    assert obs.competence.domain == "general"
    assert obs.competence.signal is None
    assert obs.competence.initiative == "user"
    assert obs.gradient.session_continuity == "continuation"
    assert obs.gradient.interaction_type == "routine"
    assert obs.memory.context_pressure == "low"


def test_unknown_enumerated_values_fall_back_to_default():
    payload = {"co": {"in": "robot"}, "g": {"sc": "later", "it": "chatty"}, "me": {"cp": "extreme"}}

    obs = parse_observation(_turn(f"<obs>{json.dumps(payload)}</obs>"))

    assert obs is not None
    assert obs.competence.initiative == "user"
    assert obs.gradient.session_continuity == "continuation"
    assert obs.gradient.interaction_type == "routine"
    assert obs.memory.context_pressure == "low"


def test_derived_fields_come_from_caller():
    payload = {"g": {"user_message_length": 999}, "me": {"chunks_in_context": 50}}

    obs = parse_observation(_turn(f"<obs>{json.dumps(payload)}</obs>", user_message="one two  three", chunks=4))

    assert obs is not None
    assert obs.gradient.user_message_length == 3
    assert obs.memory.chunks_in_context == 4


def test_no_opening_tag_returns_none():
    assert parse_observation(_turn("Just a normal answer.")) is None


def test_empty_block_returns_none():
    assert parse_observation(_turn("Answer <obs>   </obs>")) is None


def test_unclosed_block_uses_remainder():
    response = 'Answer text\n<obs>{"p": {"t": "shell", "i": "run"}}'

    obs = parse_observation(_turn(response))

    assert obs is not None
    assert obs.pattern.tool_used == "shell"


def test_trailing_commas_are_repaired():
    response = '<obs>{"p": {"t": "shell", "i": "run",}, "me": {"su": ["a", "b",],},}</obs>'

    obs = parse_observation(_turn(response))

    assert obs is not None
    assert obs.pattern.tool_used == "shell"
    assert obs.memory.skills_used == ["a", "b"]


def test_missing_outer_braces_are_repaired():
    response = '<obs>"p": {"t": "shell", "i": "run"}, "co": {"d": "ops", "si": "accept"}</obs>'

    obs = parse_observation(_turn(response))

    assert obs is not None
    assert obs.pattern.tool_used == "shell"
    assert obs.competence.domain == "ops"


def test_unrecoverable_payload_returns_none():
    assert parse_observation(_turn("<obs>this is not json at all</obs>")) is None


def test_non_object_payload_returns_none():
    assert decode_payload("[1, 2, 3]") is None
    assert parse_observation(_turn("<obs>42</obs>")) is None


def test_wrong_section_types_yield_defaults():
    payload = {"p": "oops", "s": [1, 2], "co": None, "me": {"su": "not-a-list", "cr": "x"}}

    obs = parse_observation(_turn(f"<obs>{json.dumps(payload)}</obs>"))

    assert obs is not None
    assert obs.pattern.tool_used is None
    assert obs.scar.triggered is False
    assert obs.memory.skills_used == []
    assert obs.memory.chunks_referenced == 0


def test_extract_prefers_closed_block():
    assert extract_observation_block("a <obs> {\"x\": 1} </obs> tail") == '{"x": 1}'


def test_strip_closed_block():
    assert strip_observation_block("Hello there.\n\n<obs>{}</obs>\n") == "Hello there."


def test_strip_unclosed_block_removes_everything_after_tag():
    assert strip_observation_block('Hello there. <obs>{"p": {') == "Hello there."


def test_strip_without_block_is_unchanged():
    text = "No observation here.  "
    assert strip_observation_block(text) == text


def test_read_str_coerces_and_defaults():
    obj = {"a": 5, "b": None, "c": True, "d": ""}
    assert read_str(obj, "a") == "5"
    assert read_str(obj, "b", default="x") == "x"
    assert read_str(obj, "c") == "true"
    assert read_str(obj, "d", default="fallback") == "fallback"
    assert read_str(obj, "missing") is None


def test_read_num_rejects_non_numeric():
    obj = {"a": "2.5", "b": "abc", "c": True, "d": float("nan"), "e": [1]}
    assert read_num(obj, "a") == 2.5
    assert read_num(obj, "b", default=1.0) == 1.0
    assert read_num(obj, "c", default=3.0) == 3.0
    assert read_num(obj, "d") == 0.0
    assert read_num(obj, "e") == 0.0


def test_read_bool_coerces_truthy_and_falsy():
    obj = {"a": 1, "b": 0, "c": "false", "d": "yes", "e": [], "f": None}
    assert read_bool(obj, "a") is True
    assert read_bool(obj, "b") is False
    assert read_bool(obj, "c") is False
    assert read_bool(obj, "d") is True
    assert read_bool(obj, "e") is False
    assert read_bool(obj, "f", default=True) is True


def test_read_list_and_map():
    obj = {"l": [1, "two", None], "m": {"k": 3}, "bad_map": ["x"], "bad_list": {"k": "v"}}
    assert read_str_list(obj, "l") == ["1", "two"]
    assert read_str_list(obj, "bad_list") == []
    assert read_str_map(obj, "m") == {"k": "3"}
    assert read_str_map(obj, "bad_map") == {}


def test_deeply_nested_payload_returns_none():
    response = "Answer.<obs>" + "[" * 200000 + "</obs>"

    assert decode_payload("[" * 200000) is None
    assert parse_observation(_turn(response)) is None
    assert strip_observation_block(response) == "Answer."


def test_oversized_number_falls_back_per_field():
    payload = '{"co": {"d": "ops", "si": "accept", "cx": 1' + "0" * 400 + '}, "g": {"se": 0.5}}'

    obs = parse_observation(_turn(f"<obs>{payload}</obs>"))

    assert obs is not None
    assert obs.competence.domain == "ops"
    assert obs.competence.signal == "accept"
    assert obs.competence.complexity == 1
    assert obs.gradient.sentiment == 0.5
    assert read_num({"n": 10**400}, "n", default=2.0) == 2.0
