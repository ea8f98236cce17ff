"""
FastAPI main application for the BookNook API.
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime

import structlog
from bson.errors import InvalidId
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api import dependencies
from api.config import config
from api.database import APIDatabaseService, connect_to_database
from api.models import ErrorResponse, HealthResponse
from api.routes import auth_router, book_router, review_router, user_router
from services.exceptions import BookNookError
from utilities.logger import setup_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file,
        debug=config.debug
    )
    logger.info("Starting BookNook API")

    try:
        client, database = await connect_to_database(config.mongodb_url, config.mongodb_database)
        db_service = APIDatabaseService(database)
        await db_service.ensure_indexes()
        dependencies.db_service = db_service
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        raise

    yield

    logger.info("Shutting down BookNook API")
    dependencies.db_service = None
    client.close()


app = FastAPI(
    title=config.api_title,
    description="""
    REST backend for a book catalogue with reviews and reading lists.

    ## Authentication

    Protected endpoints expect the token returned by `/auth/register` or
    `/auth/login` in the Authorization header:

    ```
    Authorization: Bearer your_token_here
    ```
    """,
    version=config.api_version,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=config.cors_allow_credentials,
    allow_methods=config.cors_allow_methods,
    allow_headers=config.cors_allow_headers,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log method, path, status and duration of each request."""
    if not config.log_requests:
        return await call_next(request)

    started = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "Request handled",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round((time.perf_counter() - started) * 1000, 2)
    )
    return response


def error_response(status_code: int, message: str, detail: str = None, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message, detail=detail).dict(exclude_none=True),
        headers=headers
    )


# Exception handlers
@app.exception_handler(BookNookError)
async def booknook_exception_handler(request: Request, exc: BookNookError):
    """Translate domain errors into the error envelope."""
    if exc.status_code >= 500:
        logger.error("Internal error", error=exc.message, path=request.url.path)
    return error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Body and query validation failures are reported as 400."""
    messages = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path"))
        message = error.get("msg", "Invalid value")
        messages.append(f"{field}: {message}" if field else message)
    return error_response(status.HTTP_400_BAD_REQUEST, ", ".join(messages) or "Invalid request")


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_exception_handler(request: Request, exc: DuplicateKeyError):
    logger.warning("Duplicate key rejected", path=request.url.path)
    return error_response(status.HTTP_400_BAD_REQUEST, "Duplicate field value entered")


@app.exception_handler(InvalidId)
async def invalid_id_exception_handler(request: Request, exc: InvalidId):
    return error_response(status.HTTP_404_NOT_FOUND, "Resource not found")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Server Error",
        detail=str(exc) if config.debug else None
    )


@app.get("/", tags=["Health"])
async def root():
    return {
        "success": True,
        "message": "BookNook API is running",
        "apiVersion": config.api_version
    }


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    db_status = "unavailable"
    if dependencies.db_service:
        health_info = await dependencies.db_service.health_check()
        db_status = health_info.get("status", "unknown")

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.utcnow(),
        version=config.api_version,
        database_status=db_status
    )


app.include_router(auth_router, prefix=config.api_prefix)
app.include_router(book_router, prefix=config.api_prefix)
app.include_router(review_router, prefix=config.api_prefix)
app.include_router(user_router, prefix=config.api_prefix)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower()
    )
