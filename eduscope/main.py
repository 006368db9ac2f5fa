"""
EduScope Academic Portal

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from eduscope.api.middleware.rate_limit import RateLimitMiddleware
from eduscope.api.middleware.request_id import REQUEST_ID_HEADER, RequestIdMiddleware
from eduscope.api.v1 import router as api_v1_router
from eduscope.config import get_settings
from eduscope.database import close_db, init_db
from eduscope.errors import AuthenticationError, PortalError
from eduscope.logging_config import configure_logging, get_logger
from eduscope.schemas.common import HealthResponse

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.

    Runs startup and shutdown tasks.
    """
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
        audit_log_file=settings.audit_log_file,
    )

    logger.info("Starting %s v%s", settings.project_name, settings.version)
    await init_db()
    logger.info("Database initialized")

    yield

    logger.info("Shutting down...")
    await close_db()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.project_name,
    description="""
    EduScope Academic Portal

    ## Features

    - **Change requests**: paper updates and deletions, academic year and
      degree changes are proposed by owners and applied only on approval
    - **Review queue**: moderators and administrators approve or reject
    - **Audit trail**: every sensitive action, including denied attempts
    - **Role management**: admin / superadmin hierarchy
    """,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# add_middleware stacks innermost-first, so the last added is outermost.
# CORS wraps everything so 429s and error responses carry its headers too.
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(
    request: Request,
    status_code: int,
    error: str,
    code: str,
    details=None,
    headers=None,
) -> JSONResponse:
    """Render the ``{success: false, error}`` envelope."""
    headers = dict(headers or {})
    content = {"success": False, "error": error, "code": code}
    if details is not None:
        content["details"] = details
    req_id = getattr(request.state, "request_id", None)
    if req_id:
        headers[REQUEST_ID_HEADER] = req_id
        if status_code >= 500:
            content["request_id"] = req_id
    return JSONResponse(status_code=status_code, content=content, headers=headers)


@app.exception_handler(PortalError)
async def portal_exception_handler(request: Request, exc: PortalError):
    """Domain errors become structured responses with their own status code."""
    details = None
    headers = None
    existing_id = getattr(exc, "existing_id", None)
    if existing_id is not None:
        details = {"existing_id": str(existing_id)}
    if isinstance(exc, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}
    if exc.status_code >= 500:
        logger.error("Request failed: %s", exc.message, extra={"code": exc.code})
    return _error_response(request, exc.status_code, exc.message, exc.code, details, headers)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    error = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return _error_response(request, exc.status_code, error, "http_error", headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
):
    """Handle request validation errors."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })
    return _error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation error",
        "validation_error",
        details=errors,
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception("Unhandled exception: %s", exc)
    error = str(exc) if settings.debug else "Internal server error"
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        error,
        "internal_error",
    )


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Check application health."""
    return HealthResponse(status="ok", version=settings.version)


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.project_name,
        "version": settings.version,
        "docs": "/docs" if settings.debug else "disabled",
        "api": {
            "v1": settings.api_v1_prefix,
        },
    }


app.include_router(
    api_v1_router,
    prefix=settings.api_v1_prefix,
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "eduscope.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
