"""Application entry point and bootstrap.

Initializes all components, wires dependencies, and provides the main
entry point for running the export API.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI

from formvault import __version__
from formvault.config import FormVaultConfig
from formvault.dao import FormDAO, SubmissionDAO
from formvault.database import Database
from formvault.logging_filters import configure_logging
from formvault.routers import create_export_router
from formvault.services import (
    ExportService,
    ImageTranscoder,
    MediaLoaderFactory,
    SignedUrlCache,
    TemporaryUrlRegistry,
    UploadService,
)
from formvault.storage import ObjectStorage, build_storage_backend

logger = logging.getLogger(__name__)


class Application:
    """Main application container.

    Owns the process-scoped signed URL cache and every service built on
    it. Tests construct it with a fake storage backend.
    """

    def __init__(self, config: FormVaultConfig, *, storage: ObjectStorage | None = None) -> None:
        """Initialize the application with configuration.

        Args:
            config: Application configuration.
            storage: Optional storage backend override.
        """
        self.config = config
        self._storage_override = storage

        self.database: Database | None = None
        self.storage: ObjectStorage | None = None
        self.http_client: httpx.AsyncClient | None = None
        self.fastapi_app: FastAPI | None = None

        self.form_dao: FormDAO | None = None
        self.submission_dao: SubmissionDAO | None = None

        self.signed_url_cache: SignedUrlCache | None = None
        self.temp_urls: TemporaryUrlRegistry | None = None
        self.media_loaders: MediaLoaderFactory | None = None
        self.export_service: ExportService | None = None
        self.upload_service: UploadService | None = None

    async def setup(self) -> None:
        """Initialize all application components."""
        logger.info("Setting up application components...")

        self.database = Database(self.config.database_url)
        if self.config.database_url.startswith("sqlite"):
            await self.database.init_db()
        self.form_dao = FormDAO(self.database)
        self.submission_dao = SubmissionDAO(self.database)

        self.storage = self._storage_override or build_storage_backend(self.config)
        self.http_client = httpx.AsyncClient(timeout=self.config.http_timeout_seconds)

        self.signed_url_cache = SignedUrlCache(
            self.storage,
            safety_margin_seconds=self.config.signed_url_safety_margin_seconds,
        )
        self.temp_urls = TemporaryUrlRegistry(self.config.temp_url_dir)
        self.media_loaders = MediaLoaderFactory(
            cache=self.signed_url_cache,
            transcoder=ImageTranscoder(quality=self.config.transcode_quality),
            temp_urls=self.temp_urls,
            ttl_seconds=self.config.interactive_url_ttl_seconds,
            bucket=self.config.storage_bucket,
            http_client=self.http_client,
        )
        self.export_service = ExportService(
            storage=self.storage,
            cache=self.signed_url_cache,
            form_dao=self.form_dao,
            submission_dao=self.submission_dao,
            export_ttl_seconds=self.config.export_url_ttl_seconds,
            reuse_margin_seconds=self.config.signed_url_safety_margin_seconds,
            bucket=self.config.storage_bucket,
        )
        self.upload_service = UploadService(
            storage=self.storage,
            submission_dao=self.submission_dao,
            cache_control=self.config.upload_cache_control,
        )

        self.create_fastapi_app()
        logger.info("Application setup complete (storage=%s)", self.config.storage_backend)

    def create_fastapi_app(self) -> FastAPI:
        """Create and configure the FastAPI application."""

        @asynccontextmanager
        async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
            logger.info("FastAPI application starting...")
            yield
            logger.info("FastAPI application shutting down...")

        self.fastapi_app = FastAPI(
            title="FormVault",
            description="Secure media access and bulk export for form submissions",
            version=__version__,
            lifespan=lifespan,
        )

        if self.export_service is not None and self.signed_url_cache is not None:
            self.fastapi_app.include_router(
                create_export_router(
                    self.export_service,
                    self.signed_url_cache,
                    interactive_ttl_seconds=self.config.interactive_url_ttl_seconds,
                    bucket=self.config.storage_bucket,
                )
            )
            logger.info("Export router registered")

        @self.fastapi_app.get("/health")
        async def health_check():
            """Health check endpoint."""
            return {
                "status": "healthy",
                "cached_urls": len(self.signed_url_cache) if self.signed_url_cache is not None else 0,
            }

        return self.fastapi_app

    async def shutdown(self) -> None:
        """Release network clients, temporary files and the database."""
        logger.info("Initiating graceful shutdown...")

        if self.temp_urls:
            self.temp_urls.revoke_all()

        if self.http_client:
            await self.http_client.aclose()

        if self.storage:
            await self.storage.aclose()

        if self.database:
            await self.database.close()
            logger.info("Database connection closed")

        logger.info("Graceful shutdown complete")


async def create_app(config: FormVaultConfig) -> Application:
    """Create and set up an Application."""
    app = Application(config)
    await app.setup()
    return app


async def main() -> None:
    """Run the API with uvicorn until interrupted."""
    import uvicorn

    config = FormVaultConfig.from_json_file()
    configure_logging(config.log_level)
    logger.info("Starting FormVault...")

    app = await create_app(config)
    try:
        uvicorn_config = uvicorn.Config(
            app.fastapi_app,
            host=config.api_host,
            port=config.api_port,
            log_level=config.log_level.lower(),
        )
        uvicorn_config.load()
        # uvicorn.Config.load() reconfigures logging; reinstall our filters.
        configure_logging(config.log_level)
        await uvicorn.Server(uvicorn_config).serve()
    except Exception as e:
        logger.exception("Application error: %s", e)
        raise
    finally:
        await app.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
