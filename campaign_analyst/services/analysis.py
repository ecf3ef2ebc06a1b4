"""
Campaign analysis pipeline.

Loads one snapshot of a workspace's campaign data for the analysis window,
runs the change impact calculator and the portfolio summarizer, and returns
the payload the prompt builder serializes:

    {dateRange, portfolioMetrics, campaigns, recentChanges?}

Only the campaigns read is required. Targets, stats and changelog failures
are logged and treated as empty so the report still goes out.
"""

import asyncio

from campaign_analyst.errors import DataStoreError
from campaign_analyst.logger import log
from campaign_analyst.services.change_impact import ChangeImpact, impacts_for
from campaign_analyst.services.portfolio import summarize, summarize_campaigns
from campaign_analyst.services.windows import AnalysisWindow


class AnalysisService:
    """Builds analysis payloads from a campaign store."""

    def __init__(self, store):
        self.store = store

    async def _optional(self, description: str, coro) -> list[dict]:
        try:
            return await coro
        except DataStoreError as e:
            log.error(f"Could not load {description}, continuing without it: {e}")
            return []

    async def change_impacts(self, workspace_id: str, window: AnalysisWindow) -> list[ChangeImpact]:
        """Impact of every logged change in the workspace, newest first."""
        changes = await self._optional("changelog", self.store.get_changelog(workspace_id))
        log.info(f"Found {len(changes)} changelog entries")
        return await impacts_for(changes, self.store.fetch_campaign_stats, window.today)

    async def build_payload(self, workspace_id: str, window: AnalysisWindow) -> dict:
        log.info(f"Analyzing date range: {window.start_str} to {window.end_str}")

        # A failed campaigns read ends the request before any other read starts
        campaigns = await self.store.get_campaigns(workspace_id)
        targets, stats, impacts = await asyncio.gather(
            self._optional("campaign targets", self.store.get_targets()),
            self._optional("campaign stats", self.store.get_stats(window)),
            self.change_impacts(workspace_id, window),
        )
        log.info(f"Found {len(stats)} stats records")

        summaries = summarize_campaigns(campaigns, stats, targets, window, impacts)
        portfolio = summarize(summaries)

        payload = {
            "dateRange": window.to_dict(),
            "portfolioMetrics": portfolio.to_dict(),
            "campaigns": [s.to_dict() for s in summaries],
        }
        if impacts:
            payload["recentChanges"] = [i.to_dict() for i in impacts]
        return payload
