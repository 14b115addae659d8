from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..logging_setup import setup_logging
from .routers import tasks as tasks_router
from .settings import Settings, get_settings
from .store import TaskStore, create_store
from .utils import error_body, validation_details

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "tasks", "description": "CRUD operations for tasks held in memory."},
]


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None, store: Optional[TaskStore] = None) -> FastAPI:
    """
    Build the FastAPI application.

    The store is constructed once here (unless one is passed in) and kept on
    app.state.store for the lifetime of the app; request handlers receive it
    through a dependency. Passing a store gives tests an isolated instance.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        setup_logging(settings.log_level)
        logger.info("Task API started (%s)", type(app.state.store).__name__)
        yield
        logger.info("Task API shutting down")

    app = FastAPI(
        title="Task Management API",
        description="REST API for managing an in-memory list of tasks.",
        version="1.0.0",
        openapi_tags=openapi_tags,
        docs_url="/api-docs",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store if store is not None else create_store(settings)

    # Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Return a consistent JSON structure for request validation errors.

        Response format:
            {
                "error": "Invalid data",
                "details": [{"loc": [...], "msg": "...", "type": "..."}, ...]
            }
        """
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body("Invalid data", validation_details(exc.errors())),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """
        Render HTTP errors as {"error": ...}. A 404 raised before any route
        matched is reported as an unknown route.
        """
        if exc.status_code == status.HTTP_404_NOT_FOUND and "endpoint" not in request.scope:
            message = f"Route {request.url.path} not found"
        else:
            message = str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body("Something went wrong!"),
        )

    # PUBLIC_INTERFACE
    @app.get("/health", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object indicating the server is running.
        """
        return {"message": "Server is running!"}

    app.include_router(tasks_router.router)
    return app


app = create_app()
