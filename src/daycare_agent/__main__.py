"""Entry point for running the daycare agent service."""

import logging

import uvicorn

from .config import get_settings

logger = logging.getLogger(__name__)


def main():
    """Run the daycare agent service."""
    settings = get_settings()

    logger.info("Starting daycare agent on %s:%s", settings.app_host, settings.app_port)

    uvicorn.run(
        "daycare_agent.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
