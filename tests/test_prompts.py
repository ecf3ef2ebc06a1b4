"""
Prompt builder tests.

Guards against:
1. The builder mutating or recomputing the payload
2. Float noise reaching the LLM
3. Mode instructions drifting between requests
"""
import copy
import json

import pytest

from campaign_analyst.services.prompts import (
    BRIEFING_INSTRUCTIONS,
    REPORT_INSTRUCTIONS,
    REPORT_REMINDERS,
    SYSTEM_PROMPT,
    build_prompt,
    round_floats,
)

PAYLOAD = {
    "dateRange": {"startDate": "2024-03-03", "endDate": "2024-03-09", "description": "Trailing 7 days (excluding today)"},
    "portfolioMetrics": {"totalSpend": 1000.0, "roas": 1.1000000000000001, "totalLeads": 70},
    "campaigns": [{"id": "c1", "name": "Rideshare", "costPerLead": 14.285714285714286, "isActive": True,
                   "capacityFillPercent": None}],
}


def embedded_json(text):
    start = text.index("{")
    end = text.rindex("}") + 1
    return json.loads(text[start:end])


def test_report_prompt():
    request = build_prompt("report", PAYLOAD, model="google/gemini-3-flash-preview")
    assert request.stream is True
    assert request.model == "google/gemini-3-flash-preview"
    system, user = request.messages
    assert system.role == "system"
    assert system.content == f"{SYSTEM_PROMPT}\n\n{REPORT_INSTRUCTIONS}"
    assert user.role == "user"
    assert user.content.endswith(REPORT_REMINDERS)
    assert '"costPerLead": 14.29' in user.content


def test_briefing_prompt():
    request = build_prompt("briefing", PAYLOAD)
    system, user = request.messages
    assert system.content == SYSTEM_PROMPT
    assert user.content.startswith(BRIEFING_INSTRUCTIONS)
    assert "At most 3 bullet points" in user.content
    assert embedded_json(user.content)["portfolioMetrics"]["roas"] == 1.1


def test_chat_prompt_embeds_payload_and_keeps_history_verbatim():
    history = [
        {"role": "user", "content": "How is Rideshare doing?"},
        {"role": "assistant", "content": "ROAS is 1.1x."},
        {"role": "user", "content": "And  capacity?\n"},
    ]
    request = build_prompt("chat", PAYLOAD, history=history)
    system, *rest = request.messages
    assert system.role == "system"
    assert "2024-03-03 to 2024-03-09" in system.content
    assert embedded_json(system.content)["campaigns"][0]["costPerLead"] == 14.29
    assert [(m.role, m.content) for m in rest] == [(m["role"], m["content"]) for m in history]


def test_chat_without_history_has_only_system_prompt():
    request = build_prompt("chat", PAYLOAD)
    assert len(request.messages) == 1


def test_payload_is_not_mutated():
    before = copy.deepcopy(PAYLOAD)
    for mode in ("report", "briefing", "chat"):
        build_prompt(mode, PAYLOAD)
    assert PAYLOAD == before


def test_same_input_same_prompt():
    assert build_prompt("report", PAYLOAD) == build_prompt("report", PAYLOAD)


def test_unknown_mode_rejected():
    with pytest.raises(ValueError):
        build_prompt("summary", PAYLOAD)


def test_round_floats_leaves_other_types_alone():
    value = {"a": 1.005, "b": [2.3333, 4], "c": None, "d": True, "e": "1.23456"}
    assert round_floats(value) == {"a": round(1.005, 2), "b": [2.33, 4], "c": None, "d": True, "e": "1.23456"}
