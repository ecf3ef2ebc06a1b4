"""
Metrics aggregation over daily campaign stat rows.

A stat row is one campaign on one calendar day:
{campaign_id, date, leads, cases, retainers, revenue, ad_spend}.
Missing or null columns count as zero. Nothing here divides by zero:
empty windows produce zero-filled metrics.
"""

from dataclasses import dataclass
from typing import Iterable


def _num(row: dict, key: str) -> float:
    return row.get(key) or 0


def safe_ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator, or 0 when the denominator is not positive."""
    return numerator / denominator if denominator > 0 else 0


def pct_change(after: float, before: float) -> float:
    """Relative change in percent, 0 when there is no baseline."""
    return (after - before) / before * 100 if before > 0 else 0


@dataclass
class Metrics:
    """Totals and rates for one set of stat rows."""

    total_leads: float = 0
    total_spend: float = 0
    total_revenue: float = 0
    total_cases: float = 0
    total_retainers: float = 0
    days: int = 0
    cost_per_lead: float = 0
    roas: float = 0
    avg_leads_per_day: float = 0
    avg_spend_per_day: float = 0
    cpl_trend: float = 0

    @property
    def profit(self) -> float:
        return self.total_revenue - self.total_spend

    @property
    def is_empty(self) -> bool:
        return self.total_spend == 0 and self.total_leads == 0

    def to_dict(self) -> dict:
        return {
            "totalLeads": self.total_leads,
            "totalSpend": self.total_spend,
            "totalRevenue": self.total_revenue,
            "totalCases": self.total_cases,
            "totalRetainers": self.total_retainers,
            "days": self.days,
            "costPerLead": self.cost_per_lead,
            "roas": self.roas,
            "avgLeadsPerDay": self.avg_leads_per_day,
            "avgSpendPerDay": self.avg_spend_per_day,
            "cplTrend": self.cpl_trend,
        }

    def to_window_dict(self) -> dict:
        """Compact form used for before/after change windows."""
        return {
            "days": self.days,
            "leads": self.total_leads,
            "spend": self.total_spend,
            "revenue": self.total_revenue,
            "cpl": self.cost_per_lead,
            "roas": self.roas,
            "leadsPerDay": self.avg_leads_per_day,
        }


def _cost_per_lead(rows: list[dict]) -> float:
    leads = sum(_num(r, "leads") for r in rows)
    spend = sum(_num(r, "ad_spend") for r in rows)
    return safe_ratio(spend, leads)


def cpl_trend(stats: Iterable[dict]) -> float:
    """
    Two-bucket CPL trend in percent.

    Rows are sorted by date and split at len // 2; the second half's CPL is
    compared to the first half's. Returns 0 when the first half has no CPL.
    """
    rows = sorted(stats, key=lambda r: r.get("date") or "")
    mid = len(rows) // 2
    first_cpl = _cost_per_lead(rows[:mid])
    second_cpl = _cost_per_lead(rows[mid:])
    return pct_change(second_cpl, first_cpl)


def aggregate(stats: Iterable[dict], with_trend: bool = True) -> Metrics:
    """
    Aggregate daily stat rows into totals, per-day averages, CPL and ROAS.

    Per-day averages divide by the number of rows present (or 1 for an
    empty window). `days` is the real row count.
    """
    rows = list(stats)

    total_leads = sum(_num(r, "leads") for r in rows)
    total_spend = sum(_num(r, "ad_spend") for r in rows)
    total_revenue = sum(_num(r, "revenue") for r in rows)
    total_cases = sum(_num(r, "cases") for r in rows)
    total_retainers = sum(_num(r, "retainers") for r in rows)

    divisor = len(rows) or 1

    return Metrics(
        total_leads=total_leads,
        total_spend=total_spend,
        total_revenue=total_revenue,
        total_cases=total_cases,
        total_retainers=total_retainers,
        days=len(rows),
        cost_per_lead=safe_ratio(total_spend, total_leads),
        roas=safe_ratio(total_revenue, total_spend),
        avg_leads_per_day=total_leads / divisor,
        avg_spend_per_day=total_spend / divisor,
        cpl_trend=cpl_trend(rows) if with_trend else 0,
    )
