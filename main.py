import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

import db
from app.errors import ComplianceError
from app.routes import admin_compliance, compliance
from app.routes.deps import envelope
from config import settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
_LOGGER = logging.getLogger(__name__)

app = FastAPI(title="Compliance Calendar")

app.include_router(admin_compliance.router)
app.include_router(compliance.router)

# DB connections are managed lazily; tables via Alembic migrations

@app.on_event("shutdown")
async def shutdown_event():
    await db.dispose_engine()

# --------------------------------------------
# Error envelopes
# --------------------------------------------

@app.exception_handler(ComplianceError)
async def compliance_error_handler(request: Request, exc: ComplianceError):
    if exc.status_code >= 500:
        _LOGGER.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return envelope(None, exc.message, exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if location:
        message = f"{location}: {message}"
    return envelope({"errors": errors}, message, 400)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    _LOGGER.exception("Unhandled error on %s %s", request.method, request.url.path)
    return envelope(None, "Internal server error", 500)
