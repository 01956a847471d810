import uuid
import logging
from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from league_service.core.exceptions import LeagueServiceError, InternalServiceError

log = logging.getLogger("exception_handlers")


# Generate a clean request id for every response
def _rid():
    """Generates a unique request ID for tracing."""
    return uuid.uuid4().hex


def _error_body(code: str, message, **extra):
    error = {"code": code, "message": message}
    error.update(extra)
    return {
        "success": False,
        "error": error,
        "request_id": _rid(),
    }


# ----------- Exception Handlers (called by FastAPI) -----------

def http_exception_handler(request: Request, exc: HTTPException):
    """Handles exceptions raised by HTTPException (e.g., 404, 400)."""
    return JSONResponse(status_code=exc.status_code, content=_error_body("http_error", exc.detail))


def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handles Pydantic validation errors (422 Unprocessable Entity)."""
    body = _error_body("validation_error", "Invalid input data", details=exc.errors())
    return JSONResponse(status_code=422, content=body)


def league_service_exception_handler(request: Request, exc: LeagueServiceError):
    """
    Renders domain errors with their own status and code.
    Expected errors (validation, not found, conflict) are user-facing and are not
    logged as system errors; internal ones never expose their detail.
    """
    if exc.status_code >= 500:
        log.error(f"Internal error on path {request.url.path}: {exc!r}")
        body = _error_body(InternalServiceError.code, "Internal Server Error")
    else:
        body = _error_body(exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=body)


def generic_exception_handler(request: Request, exc: Exception):
    """Handles all unhandled exceptions (500 Internal Server Error)."""
    # Full traceback goes to the log, never to the caller
    log.error(f"Unhandled exception on path: {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content=_error_body("server_error", "Internal Server Error"))


# ----------- Registration Function -----------

def setup_exception_handlers(app: FastAPI):
    """Registers all custom exception handlers with the FastAPI application."""
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(LeagueServiceError, league_service_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    return app
