"""FastAPI application entrypoint. No business logic; only wiring, middleware and error rendering."""

from dotenv import load_dotenv

load_dotenv()

import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DataError, IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from trial_issues import __version__
from trial_issues.api import health
from trial_issues.api.v1 import router as v1_router
from trial_issues.core.config import settings
from trial_issues.core.errors import (
    ApiError,
    BadRequestError,
    ConflictError,
    ServiceUnavailableError,
    ValidationFailedError,
)
from trial_issues.core.logging import configure_logging

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred"

app = FastAPI(
    title="Trial Issues API",
    version=__version__,
    description="Track clinical-trial site issues: CRUD, filtered listing, dashboard counts and CSV import.",
    docs_url="/api-docs",
    redoc_url="/redoc",
    openapi_url="/api-docs.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(v1_router, prefix=settings.API_V1_PREFIX)


def _error_response(error: ApiError) -> JSONResponse:
    return JSONResponse(jsonable_encoder(error.to_body()), status_code=error.status_code)


def _strip_value_error_prefix(message: str) -> str:
    # pydantic prefixes messages raised from validators with "Value error, ".
    prefix = "Value error, "
    return message[len(prefix):] if message.startswith(prefix) else message


@app.exception_handler(ApiError)
async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
    return _error_response(exc)


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render every failed rule at once as field/message/value entries."""
    details = [
        {
            "field": str(err["loc"][-1]) if err.get("loc") else "unknown",
            "message": _strip_value_error_prefix(err.get("msg", "")),
            "value": err.get("input"),
        }
        for err in exc.errors()
    ]
    return _error_response(ValidationFailedError("Invalid input data", details=details))


@app.exception_handler(StarletteHTTPException)
async def handle_http_exception(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if exc.status_code == 404:
        body = {
            "error": "Not Found",
            "message": f"Cannot {request.method} {request.url.path}",
            "path": request.url.path,
            "method": request.method,
        }
    else:
        body = {"error": HTTPStatus(exc.status_code).phrase, "message": str(exc.detail)}
    return JSONResponse(body, status_code=exc.status_code, headers=getattr(exc, "headers", None))


@app.exception_handler(IntegrityError)
async def handle_integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("Integrity error on %s %s", request.method, request.url.path)
    return _error_response(ConflictError("A record with this value already exists"))


@app.exception_handler(DataError)
async def handle_data_error(request: Request, exc: DataError) -> JSONResponse:
    logger.warning("Data error on %s %s", request.method, request.url.path)
    return _error_response(BadRequestError("Invalid input syntax"))


@app.exception_handler(OperationalError)
@app.exception_handler(PoolTimeoutError)
async def handle_database_unavailable(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Database unavailable",
        extra={"path": request.url.path, "method": request.method, "reason": str(exc)[:500]},
    )
    return _error_response(ServiceUnavailableError("Database connection failed"))


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled error",
        extra={"path": request.url.path, "method": request.method},
    )
    message = GENERIC_ERROR_MESSAGE if settings.APP_ENV == "prod" else (str(exc) or GENERIC_ERROR_MESSAGE)
    return JSONResponse(
        {"error": "Internal Server Error", "message": message},
        status_code=500,
    )


@app.get("/")
def root() -> dict[str, str]:
    """Root route; minimal payload for discovery."""
    return {"message": "Trial Issues API", "docs": "/api-docs"}
