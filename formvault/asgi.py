"""ASGI entry point for uvicorn.

Usage:
    uvicorn formvault.asgi:app --host 0.0.0.0 --port 8750
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from formvault import __version__
from formvault.config import FormVaultConfig
from formvault.logging_filters import configure_logging
from formvault.main import Application
from formvault.routers import create_export_router

_application: Application | None = None


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifespan for ASGI server."""
    global _application

    config = FormVaultConfig.from_json_file()
    configure_logging(config.log_level)
    _application = Application(config)
    await _application.setup()

    fastapi_app.include_router(
        create_export_router(
            _application.export_service,
            _application.signed_url_cache,
            interactive_ttl_seconds=config.interactive_url_ttl_seconds,
            bucket=config.storage_bucket,
        )
    )

    yield

    await _application.shutdown()
    _application = None


app = FastAPI(
    title="FormVault",
    description="Secure media access and bulk export for form submissions",
    version=__version__,
    lifespan=lifespan,
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy" if _application is not None else "starting"}
