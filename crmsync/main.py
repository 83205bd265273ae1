"""CRM Calendar Sync FastAPI Application."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from crmsync.api import auth, calendar, contacts, events, sync, tags
from crmsync.config import get_settings
from crmsync.exceptions import CRMSyncError, DuplicateEmailError
from crmsync.schemas.common import ErrorResponse
from crmsync.schemas.contact import ContactResponse
from crmsync.services.credentials import CredentialStore
from crmsync.services.database import close_db, init_db
from crmsync.services.google_calendar import SCOPES

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    await init_db()
    if settings.deployment_mode == "local":
        app.state.credential_store.load_persisted(SCOPES)
    logger.info(f"{settings.app_name} ready in {settings.deployment_mode} mode")

    yield

    # Shutdown
    await close_db()


app = FastAPI(
    title=settings.app_name,
    description="Mirror calendar attendees into a tagged contact list",
    version=settings.app_version,
    lifespan=lifespan,
)

# The one holder of Google credentials for this process
app.state.credential_store = CredentialStore(
    token_file=settings.google_token_file if settings.deployment_mode == "local" else None
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# ERROR HANDLING
# =============================================================================

def error_response(
    status_code: int, error: str, details: str | None = None, data: dict | None = None
) -> JSONResponse:
    body = ErrorResponse(error=error, details=details, data=data)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(CRMSyncError)
async def crm_error_handler(request: Request, exc: CRMSyncError) -> JSONResponse:
    data = None
    if isinstance(exc, DuplicateEmailError) and exc.existing is not None:
        data = ContactResponse.model_validate(exc.existing).model_dump(mode="json")

    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} {exc.details or ''}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc.message}")

    return error_response(exc.status_code, exc.message, exc.details, data)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"] if part != "body")
        problems.append(f"{location}: {err['msg']}" if location else err["msg"])
    return error_response(400, "; ".join(problems) or "Invalid request")


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(500, "Internal server error", details=str(exc))


# Include routers
app.include_router(contacts.router, prefix="/api/contacts", tags=["Contacts"])
app.include_router(tags.router, prefix="/api/tags", tags=["Tags"])
app.include_router(sync.router, prefix="/api/sync", tags=["Sync"])
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(calendar.router, prefix="/api/calendar", tags=["Calendar"])
app.include_router(events.router, prefix="/api/events", tags=["Events"])

# Dashboard assets, served apart from the API
app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")


@app.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "app": settings.app_name,
        "version": settings.app_version,
        "mode": settings.deployment_mode,
    }


@app.get("/", include_in_schema=False)
async def dashboard() -> FileResponse:
    """Serve the dashboard page."""
    return FileResponse(STATIC_DIR / "index.html")


def run() -> None:
    """Start the server on the configured host and port."""
    import uvicorn

    uvicorn.run("crmsync.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
