"""
Run the Task API with uvicorn.

Usage:
    python -m task_tracker.api
"""
from __future__ import annotations

import logging

import uvicorn

from ..logging_setup import setup_logging
from .main import create_app
from .settings import get_settings

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()
    setup_logging(settings.log_level)
    logger.info("Server running on http://%s:%s", settings.host, settings.port)
    logger.info("Swagger docs available at http://%s:%s/api-docs", settings.host, settings.port)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
