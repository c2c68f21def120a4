import logging
import sys
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from app.config import Settings, get_settings
from app.middleware.cors import CORSHeadersMiddleware
from app.routers import upload
from app.routers.upload import UploadError
from app.services.object_storage import S3ObjectStorage, StorageConfigError
from app.services.storage_client import StorageClient
import structlog

SERVICE_NAME = "s3-upload-api"
VERSION = "1.0.0"

logger = structlog.get_logger()


def configure_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging on top of the stdlib logging module."""
    logging.basicConfig(format="%(message)s", stream=sys.stdout)
    logging.getLogger().setLevel(level.upper())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


async def upload_error_handler(request: Request, exc: UploadError) -> PlainTextResponse:
    logger.error(
        "Upload request failed",
        status_code=exc.status_code,
        error=exc.message,
        path=request.url.path,
    )
    return PlainTextResponse(exc.message, status_code=exc.status_code)


def create_app(
    settings: Optional[Settings] = None,
    storage_client: Optional[StorageClient] = None,
) -> FastAPI:
    """
    Build the application with an explicitly constructed storage client.

    Raises:
        StorageConfigError: If no storage client is given and the S3 client
            cannot be configured
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    if storage_client is None:
        storage_client = StorageClient(S3ObjectStorage(settings))

    app = FastAPI(
        title="S3 Upload API",
        description="Stores multipart form files in S3 and returns their public URLs",
        version=VERSION
    )
    app.state.settings = settings
    app.state.storage_client = storage_client

    app.add_middleware(CORSHeadersMiddleware)
    app.add_exception_handler(UploadError, upload_error_handler)

    app.include_router(upload.router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": VERSION
        }

    return app


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)

    try:
        app = create_app(settings)
    except StorageConfigError as e:
        logger.error("Failed to create S3 client", error=str(e))
        sys.exit(1)

    import uvicorn

    logger.info("Server starting", port=settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
