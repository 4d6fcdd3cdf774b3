"""
FastAPI application entrypoint for the Andreani proxy.
"""

from __future__ import annotations

import logging
import time
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from andreani_proxy.api.routes import SERVICE_NAME, SERVICE_VERSION, router
from andreani_proxy.core.config import get_settings
from andreani_proxy.core.errors import AuthError, InternalError, ProxyError
from andreani_proxy.core.logging import configure_logging

logger = logging.getLogger(__name__)


async def _handle_proxy_error(request: Request, exc: ProxyError) -> JSONResponse:
    if isinstance(exc, AuthError):
        logger.warning("%s %s -> %s", request.method, request.url.path, exc.error_code)
    else:
        logger.error(
            "%s %s -> %s: %s", request.method, request.url.path, exc.error_code, exc.message
        )
    return JSONResponse(status_code=int(exc.status_code), content=jsonable_encoder(exc.to_payload()))


async def _handle_request_validation(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=HTTPStatus.BAD_REQUEST,
        content={
            "success": False,
            "error": "VALIDATION_ERROR",
            "message": "Request body is invalid.",
            "details": [
                {"loc": list(error["loc"]), "msg": error["msg"], "type": error["type"]}
                for error in exc.errors()
            ],
        },
    )


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    error = InternalError("Unexpected error while talking to Andreani.")
    return JSONResponse(status_code=HTTPStatus.INTERNAL_SERVER_ERROR, content=error.to_payload())


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title=SERVICE_NAME,
        version=SERVICE_VERSION,
        description="Proxy for Andreani quotes and shipments with managed carrier tokens.",
    )
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
    app.add_exception_handler(ProxyError, _handle_proxy_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)
    app.add_exception_handler(Exception, _handle_unexpected)
    app.include_router(router)
    app.state.started_at = time.monotonic()
    return app


app = create_app()

__all__ = ["app", "create_app"]
