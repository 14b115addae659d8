"""
Task API package.

Exposes the FastAPI app factory and the default app instance
(import path: task_tracker.api.app).
"""

from .main import app, create_app  # noqa: F401
