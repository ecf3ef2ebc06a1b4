"""
Portfolio Summarizer.

Builds per-campaign summaries for the analysis window and folds them into
portfolio-wide totals. Portfolio ROAS and CPL are computed from summed
totals, so big campaigns weigh more than small ones.
"""

from dataclasses import dataclass, field
from typing import Optional

from campaign_analyst.logger import log
from campaign_analyst.services.change_impact import ChangeImpact
from campaign_analyst.services.metrics import Metrics, aggregate, safe_ratio
from campaign_analyst.services.windows import DateWindow

DEFAULT_TARGET_ROAS = 2


@dataclass
class CampaignSummary:
    campaign_id: str
    name: str
    is_active: bool
    metrics: Metrics
    target_leads_per_day: Optional[float] = None
    target_roas: float = DEFAULT_TARGET_ROAS
    case_payout_amount: Optional[float] = None
    period_target: Optional[float] = None
    capacity_fill_percent: Optional[float] = None
    recent_changes: list[ChangeImpact] = field(default_factory=list)

    @property
    def is_hitting_target(self) -> bool:
        return self.capacity_fill_percent is not None and self.capacity_fill_percent >= 100

    def to_dict(self) -> dict:
        m = self.metrics
        data = {
            "id": self.campaign_id,
            "name": self.name,
            "isActive": self.is_active,
            "totalLeads": m.total_leads,
            "totalSpend": m.total_spend,
            "totalRevenue": m.total_revenue,
            "totalCases": m.total_cases,
            "profit": m.profit,
            "avgLeadsPerDay": m.avg_leads_per_day,
            "avgSpendPerDay": m.avg_spend_per_day,
            "costPerLead": m.cost_per_lead,
            "roas": m.roas,
            "cplTrend": m.cpl_trend,
            "dayCount": m.days,
            "targetLeadsPerDay": self.target_leads_per_day,
            "targetRoas": self.target_roas,
            "periodLeads": m.total_leads,
            "periodTarget": self.period_target,
            "capacityFillPercent": self.capacity_fill_percent,
            "isHittingTarget": self.is_hitting_target,
        }
        if self.recent_changes:
            data["recentChanges"] = [c.to_dict() for c in self.recent_changes]
        return data


@dataclass
class PortfolioMetrics:
    total_spend: float = 0
    total_revenue: float = 0
    total_leads: float = 0
    total_cases: float = 0
    roas: float = 0
    avg_cpl: float = 0
    active_campaigns: int = 0
    campaigns_hitting_target: int = 0

    def to_dict(self) -> dict:
        return {
            "totalSpend": self.total_spend,
            "totalRevenue": self.total_revenue,
            "totalLeads": self.total_leads,
            "totalCases": self.total_cases,
            "profit": self.total_revenue - self.total_spend,
            "roas": self.roas,
            "avgCPL": self.avg_cpl,
            "activeCampaigns": self.active_campaigns,
            "campaignsHittingTarget": self.campaigns_hitting_target,
        }


def capacity_fill(period_leads: float, target_leads_per_day: Optional[float], days: int) -> Optional[float]:
    """
    Leads achieved as a percentage of target_leads_per_day * days.

    None when no target is configured (a missing or zero target is "no
    target", not a 0% fill).
    """
    if not target_leads_per_day or days <= 0:
        return None
    return period_leads / (target_leads_per_day * days) * 100


def summarize_campaign(
    campaign: dict,
    stats: list[dict],
    target: Optional[dict],
    window: DateWindow,
    recent_changes: Optional[list[ChangeImpact]] = None,
) -> CampaignSummary:
    """Summary of one campaign's stat rows over the analysis window."""
    metrics = aggregate(stats)
    target = target or {}

    target_leads = target.get("target_leads_per_day") or None
    period_target = target_leads * window.days if target_leads else None

    return CampaignSummary(
        campaign_id=campaign["id"],
        name=campaign.get("name") or "Unknown",
        is_active=bool(campaign.get("is_active")),
        metrics=metrics,
        target_leads_per_day=target_leads,
        target_roas=target.get("target_roas") or DEFAULT_TARGET_ROAS,
        case_payout_amount=target.get("case_payout_amount"),
        period_target=period_target,
        capacity_fill_percent=capacity_fill(metrics.total_leads, target_leads, window.days),
        recent_changes=list(recent_changes or []),
    )


def summarize_campaigns(
    campaigns: list[dict],
    stats: list[dict],
    targets: list[dict],
    window: DateWindow,
    changes: Optional[list[ChangeImpact]] = None,
) -> list[CampaignSummary]:
    """
    Summaries for every campaign that had spend or leads in the window.

    A campaign whose rows cannot be summarized is logged and left out rather
    than failing the whole portfolio.
    """
    stats_by_campaign: dict[str, list[dict]] = {}
    for row in stats:
        stats_by_campaign.setdefault(row.get("campaign_id"), []).append(row)

    targets_by_campaign = {t.get("campaign_id"): t for t in targets}

    changes_by_campaign: dict[str, list[ChangeImpact]] = {}
    for change in changes or []:
        changes_by_campaign.setdefault(change.campaign_id, []).append(change)

    summaries = []
    for campaign in campaigns:
        campaign_id = campaign.get("id")
        try:
            summary = summarize_campaign(
                campaign,
                stats_by_campaign.get(campaign_id, []),
                targets_by_campaign.get(campaign_id),
                window,
                changes_by_campaign.get(campaign_id),
            )
        except (KeyError, TypeError, ValueError) as e:
            log.warning(f"Skipping campaign {campaign.get('name')!r} ({campaign_id}): {e}")
            continue

        if summary.metrics.is_empty:
            continue
        summaries.append(summary)

    return summaries


def summarize(summaries: list[CampaignSummary]) -> PortfolioMetrics:
    """
    Fold campaign summaries into portfolio totals.

    ROAS = sum(revenue) / sum(spend), not the mean of campaign ROAS.
    Campaigns with neither spend nor leads are ignored.
    """
    summaries = [s for s in summaries if not s.metrics.is_empty]

    total_spend = sum(s.metrics.total_spend for s in summaries)
    total_revenue = sum(s.metrics.total_revenue for s in summaries)
    total_leads = sum(s.metrics.total_leads for s in summaries)
    total_cases = sum(s.metrics.total_cases for s in summaries)

    return PortfolioMetrics(
        total_spend=total_spend,
        total_revenue=total_revenue,
        total_leads=total_leads,
        total_cases=total_cases,
        roas=safe_ratio(total_revenue, total_spend),
        avg_cpl=safe_ratio(total_spend, total_leads),
        active_campaigns=sum(1 for s in summaries if s.is_active),
        campaigns_hitting_target=sum(1 for s in summaries if s.is_hitting_target),
    )
