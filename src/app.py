"""Main FastAPI application module.

This module builds the FastAPI application and registers all route handlers.
The database context is created once per application and closed on shutdown.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import auth, courses, enrollment, profile, spaces
from config import API_HOST, API_PORT, CORS_ALLOWED_ORIGINS
from core.database import DatabaseContext
from core.logging_config import setup_logging
from core.schema import init_schema

logger = logging.getLogger(__name__)


def create_app(
    database: Optional[DatabaseContext] = None,
    initialize_schema: bool = True,
) -> FastAPI:
    """Create the API application.

    Args:
        database: Database context to use; one is built from the environment
            when omitted.
        initialize_schema: Create missing tables at startup.

    Returns:
        Configured FastAPI instance.
    """
    context = database or DatabaseContext()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Resolving the adapter here makes configuration errors fail startup.
        adapter = context.adapter
        logger.info("Database backend: %s", adapter.name)
        if initialize_schema:
            init_schema(adapter)
        yield
        context.close()

    app = FastAPI(
        title="Course Market API",
        description="Backend API for instructor spaces, courses and student enrollment.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.database = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth.router)
    app.include_router(profile.router)
    app.include_router(spaces.router)
    app.include_router(courses.router)
    app.include_router(enrollment.router)

    @app.get("/api/health", summary="Health check", tags=["Health"])
    def health() -> dict:
        return {"status": "ok"}

    return app


# --- Startup code for direct execution ---
if __name__ == "__main__":
    import uvicorn

    setup_logging()
    uvicorn.run(create_app(), host=API_HOST, port=API_PORT)
