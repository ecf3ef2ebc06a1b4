"""
Read access to the campaign tables in Supabase.

The analyst only reads: campaigns, campaign_targets, campaign_stats_history
and campaign_changelog. The supabase client is blocking, so each query runs
in a worker thread; that lets the before/after windows of many changelog
entries load at the same time.
"""

import asyncio
from typing import Optional

from supabase import Client, create_client

from campaign_analyst.config import Settings
from campaign_analyst.errors import ConfigurationError, DataStoreError
from campaign_analyst.logger import log
from campaign_analyst.services.windows import DateWindow

STATS_COLUMNS = "campaign_id, date, leads, ad_spend, revenue, cases, retainers"
CHANGELOG_COLUMNS = """
    campaign_id,
    change_type,
    title,
    description,
    change_date,
    campaigns!inner(name)
"""


class SupabaseStore:
    """Async, read-only view over the campaign tables."""

    def __init__(self, client: Client):
        self.client = client

    async def _select(self, description: str, build_query) -> list[dict]:
        def run():
            return build_query(self.client).execute()

        try:
            response = await asyncio.to_thread(run)
        except Exception as e:
            raise DataStoreError(f"Failed to load {description}: {e}") from e
        return response.data or []

    async def get_campaigns(self, workspace_id: str) -> list[dict]:
        return await self._select(
            "campaigns",
            lambda c: c.table("campaigns")
            .select("id, name, is_active")
            .eq("workspace_id", workspace_id),
        )

    async def get_targets(self) -> list[dict]:
        return await self._select(
            "campaign targets",
            lambda c: c.table("campaign_targets").select(
                "campaign_id, target_leads_per_day, case_payout_amount, target_roas"
            ),
        )

    async def get_stats(self, window: DateWindow, campaign_id: Optional[str] = None) -> list[dict]:
        """Stat rows with date in [window.start, window.end], oldest first."""

        def query(c):
            q = (
                c.table("campaign_stats_history")
                .select(STATS_COLUMNS)
                .gte("date", window.start_str)
                .lte("date", window.end_str)
            )
            if campaign_id is not None:
                q = q.eq("campaign_id", campaign_id)
            return q.order("date")

        return await self._select("campaign stats", query)

    async def get_changelog(self, workspace_id: str) -> list[dict]:
        """Every changelog entry for the workspace, newest first, with campaign names."""
        return await self._select(
            "campaign changelog",
            lambda c: c.table("campaign_changelog")
            .select(CHANGELOG_COLUMNS)
            .eq("workspace_id", workspace_id)
            .order("change_date", desc=True),
        )

    async def fetch_campaign_stats(self, campaign_id: str, window: DateWindow) -> list[dict]:
        """StatsFetcher for the change impact calculator."""
        return await self.get_stats(window, campaign_id=campaign_id)


def create_store(settings: Settings) -> SupabaseStore:
    """Build a store from explicit settings."""
    if not settings.store_configured:
        raise ConfigurationError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be configured")

    try:
        client = create_client(settings.supabase_url, settings.supabase_service_role_key)
    except Exception as e:
        log.error(f"Supabase client initialization failed: {e}")
        raise ConfigurationError(f"Supabase client initialization failed: {e}") from e

    return SupabaseStore(client)
