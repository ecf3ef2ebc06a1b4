"""
Changelog API endpoints.

Read-only view of logged campaign changes and their measured impact.
Creating and editing entries is handled by the dashboard's own data layer.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends

from campaign_analyst.config import Settings, get_settings
from campaign_analyst.errors import AnalystError
from campaign_analyst.logger import log
from campaign_analyst.routers.analyst import error_response, get_store_factory
from campaign_analyst.services.analysis import AnalysisService
from campaign_analyst.services.change_impact import CHANGE_TYPES
from campaign_analyst.services.windows import analysis_window

router = APIRouter()


@router.get("/impacts")
async def get_change_impacts(
    workspace_id: str,
    client_date: Optional[date] = None,
    settings: Settings = Depends(get_settings),
    store_factory=Depends(get_store_factory),
):
    """Before/after impact for every logged change, newest first."""
    window = analysis_window(client_date)
    try:
        store = store_factory(settings)
        impacts = await AnalysisService(store).change_impacts(workspace_id, window)
    except AnalystError as e:
        return error_response(e.status_code, e.message)
    except Exception as e:
        log.exception(f"Change impacts error: {e}")
        return error_response(500, str(e) or "Unknown error")

    return {
        "as_of": window.today.isoformat(),
        "entries": [i.to_dict() for i in impacts],
        "count": len(impacts),
        "too_recent": sum(1 for i in impacts if i.too_recent),
    }


@router.get("/change-types")
async def get_change_types():
    """Known change types for the UI."""
    return {"change_types": [{"value": k, "label": v} for k, v in CHANGE_TYPES]}
