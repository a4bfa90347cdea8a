from __future__ import annotations

import logging
import sys

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import router
from .config import Settings, get_settings
from .service import ConversationService, build_service

# Configure logging for the entire daycare_agent package
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logging.getLogger("daycare_agent").setLevel(logging.INFO)

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, service: ConversationService | None = None) -> FastAPI:
    """Build the FastAPI app. Without an explicit service one is wired from settings at startup."""
    resolved_settings = settings or get_settings()
    app = FastAPI(
        title="Daycare Agent",
        description="Daycare conversational assistant service",
        version="0.1.0",
        debug=resolved_settings.debug,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    app.state.service = service

    @app.on_event("startup")
    async def startup_event():
        logger.info("Daycare agent starting up")
        if app.state.service is None:
            app.state.service = build_service(resolved_settings)

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("Daycare agent shutting down")

    return app


app = create_app()
