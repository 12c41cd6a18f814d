"""Entry point for the upload server."""

import time
import uuid
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from common.exceptions import (
    ArtifactNotFound,
    CorruptNamespace,
    IncompleteUpload,
    InvalidChunkRequest,
    InvalidMergeRequest,
    MergeFailed,
    NamespaceBusy,
    ResumeLookupError,
    StorageError,
    UploadError,
)
from common.logging_config import setup_logging
from server.asset_catalog import AssetCatalog
from server.chunk_store import ChunkStore
from server.config import ServerSettings
from server.merge_engine import MergeEngine
from server.namespace_locks import NamespaceLocks
from server.routes import asset_router, upload_router
from server.schemas import ErrorResponse, HomeResponse

logger = setup_logging('server')

ERROR_STATUS = {
    InvalidChunkRequest: status.HTTP_400_BAD_REQUEST,
    InvalidMergeRequest: status.HTTP_400_BAD_REQUEST,
    IncompleteUpload: status.HTTP_400_BAD_REQUEST,
    ArtifactNotFound: status.HTTP_404_NOT_FOUND,
    CorruptNamespace: status.HTTP_409_CONFLICT,
    NamespaceBusy: status.HTTP_423_LOCKED,
    ResumeLookupError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    MergeFailed: status.HTTP_500_INTERNAL_SERVER_ERROR,
    StorageError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def error_status(exc: UploadError) -> int:
    """HTTP status for an upload error, resolved along its class hierarchy."""
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_body(exc: UploadError) -> dict:
    return ErrorResponse(
        message=exc.message,
        error=type(exc).__name__,
        code=exc.code,
        fingerprint=exc.fingerprint,
        index=exc.index,
        missing=exc.missing if isinstance(exc, IncompleteUpload) else None,
    ).model_dump(exclude_none=True)


async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()

    logger.info(
        f"Request started: {request.method} {request.url.path} [request_id={request_id}]"
    )

    response = await call_next(request)

    duration = time.time() - start_time

    logger.info(
        f"Request completed: {request.method} {request.url.path} "
        f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
    )

    response.headers["X-Request-ID"] = request_id

    return response


async def upload_error_handler(request: Request, exc: UploadError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    status_code = error_status(exc)
    if status_code >= 500:
        logger.error(
            f"{type(exc).__name__}: {exc} [request_id={request_id}] path={request.url.path}",
            exc_info=True
        )
    else:
        logger.warning(
            f"{type(exc).__name__}: {exc} [request_id={request_id}] path={request.url.path}"
        )
    return JSONResponse(status_code=status_code, content=error_body(exc))


async def validation_error_handler(request: Request, exc: RequestValidationError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(
        f"Request validation error: {exc.errors()} [request_id={request_id}] path={request.url.path}"
    )
    if request.url.path.endswith("/merge"):
        error_cls = InvalidMergeRequest
    else:
        error_cls = InvalidChunkRequest
    fields = ", ".join(".".join(str(part) for part in err["loc"]) for err in exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(error_cls(f"Invalid request: {fields}")),
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"Unhandled error: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "message": "Internal server error",
            "error": str(exc),
            "code": "INTERNAL_ERROR",
        },
    )


def create_app(settings: Optional[ServerSettings] = None) -> FastAPI:
    """
    Build the FastAPI application around one storage root.

    Args:
        settings: Server settings (defaults to ServerSettings.from_env())

    Returns:
        Configured FastAPI app; its state holds the chunk store, merge engine
        and asset catalog for the routes
    """
    if settings is None:
        settings = ServerSettings.from_env()

    app = FastAPI(
        title="SliceUpload Server",
        description="Resumable chunked file upload service",
        version="1.0.0"
    )

    locks = NamespaceLocks(timeout=settings.lock_timeout)
    chunk_store = ChunkStore(settings.upload_dir, locks, max_chunk_bytes=settings.max_chunk_bytes)

    app.state.settings = settings
    app.state.chunk_store = chunk_store
    app.state.merge_engine = MergeEngine(chunk_store)
    app.state.asset_catalog = AssetCatalog(settings.upload_dir)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.middleware("http")(log_requests)

    app.add_exception_handler(UploadError, upload_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(upload_router)
    app.include_router(asset_router)

    @app.get("/", response_model=HomeResponse)
    async def root():
        """
        Landing endpoint.
        """
        return HomeResponse(
            title="SliceUpload",
            message="Resumable chunked file upload service",
            status="running",
        )

    @app.get("/health")
    async def health_check():
        """
        Health check endpoint.
        Returns 200 if service is alive.
        """
        return {"status": "healthy", "service": "sliceupload"}

    logger.info(f"Upload root: {settings.upload_dir}")
    return app


def main() -> None:
    """
    Start the upload server with uvicorn.

    Equivalent to ``uvicorn --factory server.main:create_app``; the app is
    only built when the server starts, never on import.
    """
    settings = ServerSettings.from_env()
    settings.upload_dir.mkdir(parents=True, exist_ok=True)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
