"""
TortShark Campaign Analyst API

FastAPI backend for the campaign analyst: change impact analysis,
portfolio summaries and streamed AI reports, briefings and chat.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from campaign_analyst import __version__
from campaign_analyst.config import get_settings
from campaign_analyst.logger import log
from campaign_analyst.routers import analyst, changelog


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    settings = get_settings()
    log.info(f"Starting {settings.app_name}...")
    log.info(f"CORS allowed origins: {settings.allowed_origins()}")
    if not settings.gateway_configured:
        log.warning("AI gateway API key is not configured")
    yield
    log.info("Shutting down...")


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Campaign performance analysis and AI briefings for mass tort lead generation",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Same handler under the dashboard's serverless path
    app.include_router(analyst.router, prefix="/api", tags=["Campaign Analyst"])
    app.include_router(analyst.router, prefix="/functions/v1", tags=["Campaign Analyst"], include_in_schema=False)
    app.include_router(changelog.router, prefix="/api/changelog", tags=["Changelog"])

    @app.get("/")
    async def root():
        """Health check endpoint."""
        return {"status": "healthy", "service": settings.app_name}

    @app.get("/api/health")
    async def health_check():
        """Detailed health check."""
        return {
            "status": "healthy",
            "version": __version__,
            "endpoints": [
                "/api/campaign-analyst",
                "/api/campaign-analyst/context",
                "/api/campaign-analyst/status",
                "/api/changelog/impacts",
                "/api/changelog/change-types",
            ],
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("campaign_analyst.main:app", host="0.0.0.0", port=8000, reload=True)
