"""
Analysis pipeline tests.

Guards against:
1. A failing optional read aborting the whole report
2. Changes not being attached to their campaigns
3. The analysis window including today
"""
import asyncio

import pytest

from campaign_analyst.errors import DataStoreError
from campaign_analyst.services.analysis import AnalysisService
from campaign_analyst.services.windows import analysis_window


def build(store, today, period="trailing7"):
    return asyncio.run(AnalysisService(store).build_payload("ws1", analysis_window(today, period)))


def test_payload_shape(store, today):
    payload = build(store, today)

    assert payload["dateRange"] == {
        "startDate": "2024-03-03",
        "endDate": "2024-03-09",
        "description": "Trailing 7 days (excluding today)",
    }
    names = [c["name"] for c in payload["campaigns"]]
    assert names == ["Rideshare", "Rideshare - Broughton"]

    portfolio = payload["portfolioMetrics"]
    # c1: 7 x $100 spend / $300 revenue, c2: 7 x $200 spend / $100 revenue
    assert portfolio["totalSpend"] == 2100
    assert portfolio["totalRevenue"] == 2800
    assert portfolio["totalLeads"] == 105
    assert portfolio["roas"] == pytest.approx(2800 / 2100)
    assert portfolio["activeCampaigns"] == 2


def test_capacity_and_targets(store, today):
    campaigns = {c["id"]: c for c in build(store, today)["campaigns"]}
    assert campaigns["c1"]["capacityFillPercent"] == 100.0
    assert campaigns["c1"]["isHittingTarget"] is True
    assert campaigns["c2"]["capacityFillPercent"] is None
    assert campaigns["c2"]["targetRoas"] == 2


def test_recent_changes_newest_first_and_attached(store, today):
    payload = build(store, today)
    changes = payload["recentChanges"]
    assert [c["title"] for c in changes] == ["Budget +20%", "New video creative"]
    assert changes[0]["tooRecent"] is True
    assert changes[1]["tooRecent"] is False
    assert changes[1]["changeType"] == "Ad/Creative"

    campaigns = {c["id"]: c for c in payload["campaigns"]}
    assert [c["title"] for c in campaigns["c1"]["recentChanges"]] == ["New video creative"]
    assert [c["title"] for c in campaigns["c2"]["recentChanges"]] == ["Budget +20%"]


def test_no_changes_omits_recent_changes(store, today):
    store.changelog = []
    payload = build(store, today)
    assert "recentChanges" not in payload


def test_stats_never_read_for_today(store, today):
    build(store, today)
    assert all(window.end < today for _, window in store.stat_queries)


def test_optional_read_failures_degrade(store, today):
    store.fail = {"targets", "changelog"}
    payload = build(store, today)
    assert "recentChanges" not in payload
    assert all(c["capacityFillPercent"] is None for c in payload["campaigns"])


def test_missing_stats_give_empty_summary(store, today):
    store.fail = {"stats"}
    payload = build(store, today)
    assert payload["campaigns"] == []
    assert payload["portfolioMetrics"]["roas"] == 0


def test_campaign_read_failure_is_fatal_and_starts_no_other_reads(store, today):
    store.fail = {"campaigns"}
    with pytest.raises(DataStoreError):
        build(store, today)
    assert store.stat_queries == []


def test_yesterday_period(store, today):
    payload = build(store, today, "yesterday")
    assert payload["dateRange"]["startDate"] == payload["dateRange"]["endDate"] == "2024-03-09"
    assert payload["portfolioMetrics"]["totalLeads"] == 15
