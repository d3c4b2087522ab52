"""
Storefront Gateway - Main Application
FastAPI application exposing platform integrations to the dashboard.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Callable, Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storefront_sync.app.core.exceptions import (
    ConfigurationError,
    PersistenceError,
    PlatformNotFoundError,
)
from storefront_sync.app.storage.catalog import create_demo_catalog
from storefront_sync.app.sync.manager import IntegrationManager, create_integration_manager

from .api.endpoints import integrations, oauth
from .core.config import settings

logger = logging.getLogger(__name__)

ManagerFactory = Callable[[], IntegrationManager]


def default_manager_factory() -> IntegrationManager:
    catalog = create_demo_catalog() if settings.demo_catalog else None
    return create_integration_manager(catalog=catalog)


def create_app(manager_factory: Optional[ManagerFactory] = None) -> FastAPI:
    """
    Build the gateway application.

    Args:
        manager_factory: Creates the integration manager at startup

    Returns:
        Configured FastAPI application
    """
    factory = manager_factory or default_manager_factory

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        Application lifespan manager.

        Args:
            app: The FastAPI application instance

        Yields:
            None
        """
        logger.info("Starting storefront gateway")

        manager = factory()
        await manager.startup()
        app.state.manager = manager

        logger.info("Storefront gateway started successfully")

        yield

        logger.info("Shutting down storefront gateway")
        await manager.shutdown()
        logger.info("Storefront gateway shut down")

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Platform integration and synchronization API for the storefront dashboard",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(oauth.router)
    application.include_router(integrations.router)

    @application.exception_handler(PlatformNotFoundError)
    async def platform_not_found_handler(request: Request, exc: PlatformNotFoundError):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": "Not found", "message": str(exc)})

    @application.exception_handler(ConfigurationError)
    async def configuration_error_handler(request: Request, exc: ConfigurationError):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "Bad request", "message": str(exc)})

    @application.exception_handler(PersistenceError)
    async def persistence_error_handler(request: Request, exc: PersistenceError):
        logger.error(f"Storage unavailable: {exc}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"error": "Service unavailable", "message": str(exc)},
        )

    @application.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Global exception handler.

        Args:
            request: The FastAPI request object
            exc: The exception that occurred

        Returns:
            JSON error response
        """
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        logger.error(f"Unhandled exception [{request_id}]: {exc}", exc_info=True)

        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "message": "An unexpected error occurred",
                "request_id": request_id,
            }
        )

    @application.get("/")
    async def root():
        """
        Root endpoint.

        Returns:
            Welcome message
        """
        return {
            "message": "Welcome to the Storefront Gateway",
            "version": settings.app_version,
            "environment": settings.environment,
            "status": "running",
        }

    @application.get("/info")
    async def info():
        """
        Service information endpoint.

        Returns:
            Service information
        """
        return {
            "service": "storefront_gateway",
            "version": settings.app_version,
            "environment": settings.environment,
            "debug": settings.debug,
            "host": settings.host,
            "port": settings.port,
        }

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "storefront_gateway.app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
