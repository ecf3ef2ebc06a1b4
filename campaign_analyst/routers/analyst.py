"""
Campaign Analyst API endpoints.

One entry point serves the full report, the morning briefing and chat:

- messages present  -> chat
- briefingMode true -> briefing
- otherwise         -> report

Success is the AI gateway's SSE stream passed through unmodified. Failures
before streaming starts are `{"error": "..."}` JSON with status 429, 402
or 500.
"""

from datetime import date
from typing import Callable, Literal, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field

from campaign_analyst.config import Settings, get_settings
from campaign_analyst.errors import AnalystError
from campaign_analyst.logger import log
from campaign_analyst.services.analysis import AnalysisService
from campaign_analyst.services.llm_gateway import LLMGateway
from campaign_analyst.services.prompts import build_prompt
from campaign_analyst.services.store import create_store
from campaign_analyst.services.windows import analysis_window

router = APIRouter()


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class AnalystRequest(BaseModel):
    """Request body, camelCase as sent by the dashboard."""

    workspaceId: str
    messages: Optional[list[ChatMessage]] = None
    briefingMode: bool = False
    analysisPeriod: Literal["yesterday", "trailing7"] = "trailing7"
    clientDate: Optional[date] = Field(default=None, description="User's local today (YYYY-MM-DD)")

    @property
    def mode(self) -> str:
        if self.messages:
            return "chat"
        if self.briefingMode:
            return "briefing"
        return "report"


def get_store_factory() -> Callable[[Settings], object]:
    """Dependency: builds the data store from settings. Overridden in tests."""
    return create_store


def get_gateway_factory() -> Callable[[Settings], LLMGateway]:
    """Dependency: builds the AI gateway from settings. Overridden in tests."""
    return LLMGateway.from_settings


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def build_request_payload(request: AnalystRequest, settings: Settings, store_factory) -> dict:
    window = analysis_window(request.clientDate, request.analysisPeriod)
    store = store_factory(settings)
    return await AnalysisService(store).build_payload(request.workspaceId, window)


# Store and gateway are built inside the handlers so that configuration
# errors come back as {"error": ...} like every other failure.

@router.post("/campaign-analyst")
async def campaign_analyst(
    request: AnalystRequest,
    settings: Settings = Depends(get_settings),
    store_factory=Depends(get_store_factory),
    gateway_factory=Depends(get_gateway_factory),
):
    """Stream a report, morning briefing or chat reply for a workspace."""
    try:
        payload = await build_request_payload(request, settings, store_factory)
        llm_request = build_prompt(
            request.mode,
            payload,
            history=request.messages,
            model=settings.ai_model,
        )
        upstream = await gateway_factory(settings).stream(llm_request)
    except AnalystError as e:
        log.error(f"Campaign analyst error: {e.message}")
        return error_response(e.status_code, e.message)
    except Exception as e:
        log.exception(f"Campaign analyst error: {e}")
        return error_response(500, str(e) or "Unknown error")

    return StreamingResponse(upstream, media_type="text/event-stream")


@router.post("/campaign-analyst/context")
async def campaign_analyst_context(
    request: AnalystRequest,
    settings: Settings = Depends(get_settings),
    store_factory=Depends(get_store_factory),
):
    """The data payload the AI would see (for debugging)."""
    try:
        payload = await build_request_payload(request, settings, store_factory)
    except AnalystError as e:
        return error_response(e.status_code, e.message)
    except Exception as e:
        log.exception(f"Campaign analyst context error: {e}")
        return error_response(500, str(e) or "Unknown error")
    return {"mode": request.mode, "payload": payload}


@router.get("/campaign-analyst/status")
async def get_status(settings: Settings = Depends(get_settings)):
    """Check whether the analyst can run."""
    return {
        "available": settings.store_configured and settings.gateway_configured,
        "data_store_configured": settings.store_configured,
        "api_key_set": settings.gateway_configured,
        "model": settings.ai_model,
    }
