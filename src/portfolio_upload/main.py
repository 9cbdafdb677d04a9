"""Main application entrypoint for the Portfolio Upload API."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from portfolio_upload.api.middleware import HTTPErrorLoggingMiddleware
from portfolio_upload.api.v1 import routes_health
from portfolio_upload.api.v1.routes_upload import router as upload_router
from portfolio_upload.core.config import settings
from portfolio_upload.core.logging import setup_logging


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    # Initialize logging first
    setup_logging()

    app = FastAPI(
        title=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
    )

    app.add_middleware(HTTPErrorLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(routes_health.router, tags=["health"])
    app.include_router(upload_router)

    return app


# Export app instance for ASGI servers
app = create_app()


if __name__ == "__main__":
    import os

    import uvicorn

    port = int(os.getenv("PORT", "8080"))
    uvicorn.run(app, host="0.0.0.0", port=port)
