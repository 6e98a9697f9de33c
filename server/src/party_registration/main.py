#!/usr/bin/env python3
"""Party Registration - registration API server"""

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from party_registration.config import config
from party_registration.logging_config import get_logger, setup_logging
from party_registration.routers.health import health
from party_registration.routers.registration import router as registration_router
from party_registration.services.errors import (
    NotFoundError,
    PersistenceError,
    ValidationError,
)

# Configure logging (INFO -> stdout, WARNING/ERROR -> stderr)
setup_logging()
logger = get_logger(__name__)


app = FastAPI(
    title="Party Registration",
    description="Guest registrations for the New Year's party, gated behind a manual payment step",
    version="1.0.0",
)

# The web client is served from a different origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=config["cors_origins"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def _failure(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, **extra},
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return _failure(status.HTTP_400_BAD_REQUEST, exc.message, errors=exc.errors)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
):
    logger.info(f"Rejected malformed request to {request.url.path}: {exc.errors()}")
    return _failure(status.HTTP_400_BAD_REQUEST, "Invalid request body")


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return _failure(status.HTTP_404_NOT_FOUND, "Registration not found")


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    logger.error(f"{request.method} {request.url.path} failed to persist: {exc}")
    return _failure(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to save registration data"
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


app.include_router(health)
app.include_router(registration_router)


if __name__ == "__main__":
    port = config["port"]
    logger.info(f"Starting Party Registration on 0.0.0.0:{port}")
    logger.info(f"Registration endpoint: http://localhost:{port}/api/register")
    logger.info(f"Users endpoint: http://localhost:{port}/api/users")

    try:
        uvicorn.run(
            app, host="0.0.0.0", port=port, log_level=config["log_level"].lower()
        )
    except Exception as e:
        logger.error(f"Failed to start server: {e}")
        raise
