"""
Prompt Builder.

Turns the aggregated campaign payload into an LLM chat-completions request
for one of three modes:

- report: full multi-section analysis
- briefing: morning digest, at most 3 one-line bullets
- chat: conversation with the payload embedded in the system prompt

The payload is serialized as-is (floats rounded to 2 decimals); nothing is
recomputed here and the caller's objects are never mutated.
"""

import copy
import json
from typing import Any, Optional

from pydantic import BaseModel

MODES = ("report", "briefing", "chat")

SYSTEM_PROMPT = """You are an expert digital marketing analyst for a mass tort legal advertising agency. Your job is to analyze campaign performance data and provide actionable insights.

CRITICAL: Each campaign in the data has a UNIQUE ID. Campaigns with similar names (e.g., "Rideshare" vs "Rideshare - Broughton") are COMPLETELY SEPARATE campaigns. Analyze each one individually based on its own metrics. Do NOT combine or confuse them.

You're analyzing campaigns that generate leads for mass tort legal cases. Key metrics:
- ROAS (Return on Ad Spend): Target is minimum 2x (every $1 spent returns $2). THIS IS THE PRIMARY SUCCESS METRIC.
- Lead Volume: Each campaign may have daily lead targets (targetLeadsPerDay) and a capacity fill percentage for the analysis period
- CPL Trends: Only compare a campaign's CPL to its OWN historical performance - NEVER compare CPL between different campaigns

CRITICAL RULES:
1. **ROAS is king**: If a campaign has 2x+ ROAS, it is profitable. DO NOT recommend scaling back profitable campaigns.
2. **Never reallocate between campaigns**: The goal is to MAXIMIZE ALL campaigns, not shift budget between them.
3. **CPL is relative**: A $500 CPL might be great for one tort and terrible for another. Only flag rising CPL trends within the same campaign.
4. **If ROAS < 2x, the campaign is NOT profitable** - flag this clearly.
5. **CAPACITY IS KEY**: Check capacityFillPercent for each campaign. If a campaign is under 100% capacity and has decent ROAS (1.5x+), this is a BIG OPPORTUNITY to push volume.
6. **Near-profitable campaigns under capacity are priority**: If ROAS is close to 2x (1.5x-2x) AND under capacity, highlight this as a key opportunity.

CHANGELOG ANALYSIS (if recentChanges data is present):
When you see "recentChanges" data, this contains logged changes the user made to campaigns with before/after impact metrics. ANALYZE THESE CAREFULLY:
- Compare the "before" vs "after" metrics for each change
- Highlight changes that had POSITIVE impact (lower CPL, higher ROAS, more leads per day)
- Flag changes that had NEGATIVE impact so they can be rolled back
- Changes marked tooRecent have no full day of data after them yet - say there is not enough data yet
- Note changes that are too recent (daysOfDataAfter < 5) to draw conclusions
- Correlate performance trends with the timing of changes"""

REPORT_INSTRUCTIONS = """ANALYSIS PRIORITY ORDER:
1. First, analyze any recent changelog entries and their impact on performance
2. Second, identify campaigns that are PROFITABLE (2x+ ROAS) but UNDER CAPACITY - these are your biggest opportunities
3. Third, identify campaigns NEAR profitable (1.5x-2x ROAS) and under capacity - these could become profitable with scale
4. Fourth, identify unprofitable campaigns (under 1.5x ROAS)

Format your response as:

## 🎯 Executive Summary
Brief 2-3 sentence overview. Start with overall portfolio ROAS. Immediately highlight any profitable campaigns that are under capacity. If there are logged changes, mention their overall impact.

## 🔄 Change Impact Analysis
(Include this section ONLY if recentChanges data exists)
For each logged change, show:
- Campaign name, change type, and what was changed
- Date of change
- Before vs After comparison (CPL, ROAS, Leads/Day)
- Impact assessment: ✅ Positive, ⚠️ Neutral/Too Early, ❌ Negative
- Recommendation: Keep, Roll Back, or Wait for More Data

## 📊 Campaign Overview
For ALL active campaigns, show:
| Campaign | Spend | Revenue | ROAS | Profit/Loss | Leads | Daily Target | Capacity % |
Mark campaigns with: ✅ (2x+ ROAS), ⚠️ (1.5-2x), ❌ (<1.5x)

## 🚀 Top Priority: Under-Capacity Opportunities
Campaigns with decent ROAS (1.5x+) that are UNDER capacity (capacityFillPercent < 100). These should be scaled up. Show the gap between current leads and target.

## 🚨 Losing Money (Action Required)
Campaigns with ROAS < 1.5x - calculate exact losses.

## ✅ Performing Well
Campaigns hitting both profitability (2x+) and capacity targets.

## 📉 CPL Trend Alerts
Only campaigns where CPL is rising vs their own past (cplTrend > 15%).

## 💡 Campaign-Specific Actions
One actionable item per campaign. Prioritize changes based on changelog impact analysis.

IMPORTANT: If a campaign has positive ROAS but is under capacity, this is your MAIN recommendation - push more volume there!"""

REPORT_REMINDERS = """CRITICAL REMINDERS:
- Minimum target ROAS is 2x. Below 2x = LOSING MONEY. Be very clear about this.
- NEVER tell me to reallocate budget between campaigns - I want to maximize ALL campaigns
- NEVER tell me to scale back a profitable campaign (2x+ ROAS)
- Only compare a campaign's CPL to its OWN history, not to other campaigns
- Show me ALL active campaigns in the overview
- If a campaign shows low/no revenue but has spend, flag it as potentially unprofitable - don't recommend scaling it!
- Calculate actual profit (revenue - spend) for each campaign
- If there are recentChanges, ANALYZE THEIR IMPACT in detail - this is critical for understanding what's working"""

BRIEFING_INSTRUCTIONS = """Write my morning briefing from this data.

RULES:
- At most 3 bullet points, each on ONE line (no sub-bullets, no headers, no tables)
- Lead with the single most important thing: money being lost, a profitable campaign under capacity, or the result of a logged change
- Use real numbers from the data (ROAS, spend, leads, capacity %)
- If a logged change is tooRecent, say there is not enough data yet instead of judging it
- No greeting and no closing remarks"""

CHAT_SYSTEM_PROMPT = """You are the campaign analyst for a mass tort legal advertising agency, chatting with the person who runs the campaigns.

Answer questions using ONLY the campaign data below. If the data cannot answer a question, say so plainly.

RULES:
- ROAS is the primary success metric; 2x is the minimum profitable level
- Each campaign ID is a separate campaign, even when names are similar
- Only compare a campaign's CPL to its own history, never to other campaigns
- Never recommend shifting budget between campaigns or scaling back a 2x+ ROAS campaign
- Changes marked tooRecent have no full day of data after them yet
- Keep answers short and specific, in Markdown

CAMPAIGN DATA ({description}, {start_date} to {end_date}):
{data}"""


class ChatMessage(BaseModel):
    role: str
    content: str


class LLMRequest(BaseModel):
    """Body sent to the OpenAI-compatible chat completions endpoint."""

    model: str
    messages: list[ChatMessage]
    stream: bool = True


def round_floats(value: Any, ndigits: int = 2) -> Any:
    """Copy of `value` with every float rounded; ints, strings and None pass through."""
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return round(value, ndigits)
    if isinstance(value, dict):
        return {k: round_floats(v, ndigits) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [round_floats(v, ndigits) for v in value]
    return value


def serialize_payload(payload: dict) -> str:
    """Pretty JSON for the prompt, with float noise removed."""
    return json.dumps(round_floats(copy.deepcopy(payload)), indent=2, ensure_ascii=False)


def build_prompt(
    mode: str,
    payload: dict,
    history: Optional[list] = None,
    model: str = "",
) -> LLMRequest:
    """
    Build the chat-completions request for a report, briefing or chat turn.

    In chat mode `history` (user/assistant messages) follows the system
    prompt verbatim.
    """
    if mode not in MODES:
        raise ValueError(f"Unknown prompt mode: {mode!r}")

    data = serialize_payload(payload)

    if mode == "chat":
        date_range = payload.get("dateRange", {})
        system = CHAT_SYSTEM_PROMPT.format(
            description=date_range.get("description", ""),
            start_date=date_range.get("startDate", ""),
            end_date=date_range.get("endDate", ""),
            data=data,
        )
        messages = [ChatMessage(role="system", content=system)]
        messages.extend(_as_message(m) for m in history or [])
        return LLMRequest(model=model, messages=messages)

    if mode == "briefing":
        system = SYSTEM_PROMPT
        user = f"{BRIEFING_INSTRUCTIONS}\n\n{data}"
    else:
        system = f"{SYSTEM_PROMPT}\n\n{REPORT_INSTRUCTIONS}"
        user = (
            "Analyze this campaign performance data and provide strategic recommendations:\n\n"
            f"{data}\n\n{REPORT_REMINDERS}"
        )

    return LLMRequest(
        model=model,
        messages=[
            ChatMessage(role="system", content=system),
            ChatMessage(role="user", content=user),
        ],
    )


def _as_message(message) -> ChatMessage:
    if isinstance(message, ChatMessage):
        return ChatMessage(role=message.role, content=message.content)
    if isinstance(message, BaseModel):
        return ChatMessage(**message.model_dump())
    return ChatMessage(role=message["role"], content=message["content"])
