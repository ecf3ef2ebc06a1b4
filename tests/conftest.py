"""
Shared fixtures: an in-memory campaign store and helpers for SSE bodies.
"""
import json
from datetime import date, timedelta

import pytest

from campaign_analyst.errors import DataStoreError
from campaign_analyst.services.windows import DateWindow


class FakeStore:
    """In-memory stand-in for SupabaseStore with the same async read API."""

    def __init__(self, campaigns=None, targets=None, stats=None, changelog=None):
        self.campaigns = campaigns or []
        self.targets = targets or []
        self.stats = stats or []
        self.changelog = changelog or []
        self.fail = set()
        self.stat_queries = []

    def _check(self, name):
        if name in self.fail:
            raise DataStoreError(f"Failed to load {name}: boom")

    async def get_campaigns(self, workspace_id):
        self._check("campaigns")
        return [c for c in self.campaigns if c.get("workspace_id", workspace_id) == workspace_id]

    async def get_targets(self):
        self._check("targets")
        return list(self.targets)

    async def get_stats(self, window: DateWindow, campaign_id=None):
        self._check("stats")
        self.stat_queries.append((campaign_id, window))
        rows = [
            s for s in self.stats
            if window.start_str <= s["date"] <= window.end_str
            and (campaign_id is None or s["campaign_id"] == campaign_id)
        ]
        return sorted(rows, key=lambda s: s["date"])

    async def get_changelog(self, workspace_id):
        self._check("changelog")
        return sorted(self.changelog, key=lambda c: c["change_date"], reverse=True)

    async def fetch_campaign_stats(self, campaign_id, window):
        return await self.get_stats(window, campaign_id=campaign_id)


def daily_rows(campaign_id, start, days, leads=10, ad_spend=100.0, revenue=300.0, cases=1):
    """One stat row per day starting at `start` (a date)."""
    return [
        {
            "campaign_id": campaign_id,
            "date": (start + timedelta(days=i)).isoformat(),
            "leads": leads,
            "ad_spend": ad_spend,
            "revenue": revenue,
            "cases": cases,
            "retainers": 0,
        }
        for i in range(days)
    ]


def sse_body(tokens, done=True) -> bytes:
    """Serialize tokens the way an OpenAI-compatible gateway streams them."""
    lines = [
        "data: " + json.dumps({"choices": [{"delta": {"content": t}}]})
        for t in tokens
    ]
    if done:
        lines.append("data: [DONE]")
    return ("\n\n".join(lines) + "\n\n").encode("utf-8")


TODAY = date(2024, 3, 10)


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def store():
    """Two campaigns with a week of stats before TODAY and one logged change."""
    start = TODAY - timedelta(days=14)
    campaigns = [
        {"id": "c1", "name": "Rideshare", "is_active": True},
        {"id": "c2", "name": "Rideshare - Broughton", "is_active": True},
        {"id": "c3", "name": "Paused Tort", "is_active": False},
    ]
    targets = [
        {"campaign_id": "c1", "target_leads_per_day": 10, "case_payout_amount": 2500, "target_roas": 2},
    ]
    stats = (
        daily_rows("c1", start, 14, leads=10, ad_spend=100.0, revenue=300.0)
        + daily_rows("c2", start, 14, leads=5, ad_spend=200.0, revenue=100.0)
    )
    changelog = [
        {
            "campaign_id": "c1",
            "change_type": "ad_creative",
            "title": "New video creative",
            "description": "Swapped hero video",
            "change_date": (TODAY - timedelta(days=5)).isoformat(),
            "campaigns": {"name": "Rideshare"},
        },
        {
            "campaign_id": "c2",
            "change_type": "spend_increase",
            "title": "Budget +20%",
            "description": None,
            "change_date": TODAY.isoformat(),
            "campaigns": {"name": "Rideshare - Broughton"},
        },
    ]
    return FakeStore(campaigns, targets, stats, changelog)
