"""
Change Impact Calculator.

Measures what a logged campaign change did to performance by comparing the
7 days before the change to the days after it:

- before = [change - 7d, change - 1d]
- after  = [change + 1d, min(change + 7d, yesterday)]

The change day itself is left out of both windows since it is part
before/part after. Changes with no fully elapsed day after them are still
returned, flagged `tooRecent`, so the report can say "not enough data yet".
"""

import asyncio
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Awaitable, Callable, Optional

from campaign_analyst.errors import DataStoreError
from campaign_analyst.logger import log
from campaign_analyst.services.metrics import Metrics, aggregate, pct_change
from campaign_analyst.services.windows import (
    AFTER_WINDOW_DAYS,
    BEFORE_WINDOW_DAYS,
    DateWindow,
    to_day,
)

# fetch_stats(campaign_id, window) -> stat rows for that campaign in the window
StatsFetcher = Callable[[str, DateWindow], Awaitable[list[dict]]]

CHANGE_TYPES = [
    ("ad_creative", "Ad/Creative"),
    ("spend_increase", "Spend Increase"),
    ("spend_decrease", "Spend Decrease"),
    ("targeting", "Targeting"),
]
CHANGE_TYPE_LABELS = dict(CHANGE_TYPES)


def change_type_label(change_type: Optional[str]) -> str:
    if not change_type:
        return "Other"
    return CHANGE_TYPE_LABELS.get(change_type, change_type.replace("_", " ").title())


@dataclass
class ChangeImpact:
    """Before/after comparison for one changelog entry."""

    campaign_id: Optional[str]
    campaign_name: str
    change_type: str
    title: Optional[str]
    description: Optional[str]
    change_date: str
    too_recent: bool = False
    before_window: Optional[DateWindow] = None
    after_window: Optional[DateWindow] = None
    before: Optional[Metrics] = None
    after: Optional[Metrics] = None
    impact: Optional[dict] = field(default=None)

    @property
    def days_of_data_after(self) -> int:
        return self.after.days if self.after else 0

    def to_dict(self) -> dict:
        return {
            "campaignName": self.campaign_name,
            "changeType": change_type_label(self.change_type),
            "title": self.title,
            "description": self.description,
            "changeDate": self.change_date,
            "tooRecent": self.too_recent,
            "daysOfDataAfter": self.days_of_data_after,
            "beforePeriod": _period(self.before_window),
            "afterPeriod": _period(self.after_window),
            "before": self.before.to_window_dict() if self.before else None,
            "after": self.after.to_window_dict() if self.after else None,
            "impact": self.impact,
        }


def _period(window: Optional[DateWindow]) -> Optional[str]:
    if window is None:
        return None
    return f"{window.start_str} to {window.end_str}"


def impact_windows(change_day: date, today: date) -> Optional[tuple[DateWindow, DateWindow]]:
    """
    Before and after windows for a change, or None if it is too recent.

    The after window is clipped so it never reaches today.
    """
    yesterday = today - timedelta(days=1)
    if change_day >= today:
        return None

    before = DateWindow(
        start=change_day - timedelta(days=BEFORE_WINDOW_DAYS),
        end=change_day - timedelta(days=1),
    )
    after_start = change_day + timedelta(days=1)
    after_end = min(change_day + timedelta(days=AFTER_WINDOW_DAYS), yesterday)

    if after_start > yesterday:
        return None

    return before, DateWindow(start=after_start, end=after_end)


def calculate_impact(before: Metrics, after: Metrics) -> dict:
    """Percentage change in CPL, ROAS and leads/day from before to after."""
    return {
        "cplChange": pct_change(after.cost_per_lead, before.cost_per_lead),
        "roasChange": pct_change(after.roas, before.roas),
        "leadsPerDayChange": pct_change(after.avg_leads_per_day, before.avg_leads_per_day),
    }


async def impact_of(change: dict, fetch_stats: StatsFetcher, today: date) -> ChangeImpact:
    """
    Compute the impact of a single changelog entry.

    `change` is a changelog row: campaign_id, change_type, title, description,
    change_date and the joined campaign name.
    """
    change_day = to_day(change.get("change_date"))
    result = ChangeImpact(
        campaign_id=change.get("campaign_id"),
        campaign_name=_campaign_name(change),
        change_type=change.get("change_type"),
        title=change.get("title"),
        description=change.get("description"),
        change_date=change_day.isoformat(),
    )

    windows = impact_windows(change_day, today)
    if windows is None:
        result.too_recent = True
        return result

    before_window, after_window = windows
    before_stats, after_stats = await asyncio.gather(
        fetch_stats(result.campaign_id, before_window),
        fetch_stats(result.campaign_id, after_window),
    )

    result.before_window = before_window
    result.after_window = after_window
    result.before = aggregate(before_stats, with_trend=False)
    result.after = aggregate(after_stats, with_trend=False)
    result.impact = calculate_impact(result.before, result.after)
    return result


async def impacts_for(
    changes: list[dict],
    fetch_stats: StatsFetcher,
    today: date,
) -> list[ChangeImpact]:
    """
    Impacts for every changelog entry, computed concurrently.

    Output keeps the input order (reverse-chronological from the store).
    An entry whose stats cannot be read, or whose date is unparseable, is
    logged and skipped.
    """
    results = await asyncio.gather(
        *(impact_of(change, fetch_stats, today) for change in changes),
        return_exceptions=True,
    )

    impacts = []
    for change, result in zip(changes, results):
        if isinstance(result, (DataStoreError, ValueError)):
            log.warning(
                f"Skipping impact for change {change.get('title')!r} "
                f"({change.get('change_date')}): {result}"
            )
            continue
        if isinstance(result, BaseException):
            raise result
        impacts.append(result)

    return impacts


def _campaign_name(change: dict) -> str:
    campaign = change.get("campaigns")
    if isinstance(campaign, dict) and campaign.get("name"):
        return campaign["name"]
    return change.get("campaign_name") or "Unknown"
