"""
FastAPI routes for the Andreani proxy.
"""

from __future__ import annotations

import logging
import time
from http import HTTPStatus
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, Request

from andreani_proxy.core.config import AndreaniSettings
from andreani_proxy.core.errors import AuthError, AuthErrorCode, ValidationError
from andreani_proxy.core.logging import mask_secret
from andreani_proxy.dependencies import (
    get_andreani_gateway,
    get_andreani_settings,
    get_token_manager,
)
from andreani_proxy.models.token import Credential
from andreani_proxy.schemas import LoginRequest, LoginResponse, QuoteRequest, ShipmentRequest

router = APIRouter()
logger = logging.getLogger(__name__)

SERVICE_NAME = "Andreani Service API"
SERVICE_VERSION = "1.0.0"


def _require_credentials(token_manager: Any, payload: LoginRequest) -> None:
    if token_manager.requires_credentials and not (payload.username and payload.password):
        raise ValidationError("username and password are required.")


def _login_response(token_manager: Any, credential: Credential) -> LoginResponse:
    return LoginResponse(
        access_token=credential.token,
        expires_in=token_manager.expires_in(),
        session_only=credential.session_only,
    )


@router.get("/", status_code=HTTPStatus.OK)
async def service_info(
    settings: Annotated[AndreaniSettings, Depends(get_andreani_settings)],
) -> dict:
    """Service metadata and endpoint directory."""
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "endpoints": {
            "health": "GET /health",
            "login": "POST /login",
            "refresh": "POST /refresh-token",
            "cotizar": "POST /cotizar",
            "crear_envio": "POST /crear-envio",
        },
        "status": "running",
        "auth_strategy": settings.auth_strategy,
        "quote_shape": settings.quote_shape,
        "quote_transport": settings.quote_transport,
        "chrome_path": settings.browser_executable_path or "playwright-bundled",
    }


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck(
    request: Request,
    token_manager: Annotated[Any, Depends(get_token_manager)],
) -> dict:
    """Health endpoint reporting uptime and the token cache state."""
    started_at = getattr(request.app.state, "started_at", time.monotonic())
    return {
        "status": "ok",
        "uptime": round(time.monotonic() - started_at, 3),
        **token_manager.status(),
    }


@router.post("/login", status_code=HTTPStatus.OK, response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    token_manager: Annotated[Any, Depends(get_token_manager)],
) -> LoginResponse:
    """Return the cached token, logging in to Andreani when needed."""
    _require_credentials(token_manager, payload)
    logger.info("Login requested for %s", mask_secret(payload.username))
    credential = await token_manager.get_token(
        username=payload.username, password=payload.password
    )
    return _login_response(token_manager, credential)


@router.post("/refresh-token", status_code=HTTPStatus.OK, response_model=LoginResponse)
async def refresh_token(
    payload: LoginRequest,
    token_manager: Annotated[Any, Depends(get_token_manager)],
) -> LoginResponse:
    """Discard the cached token and force a fresh login."""
    _require_credentials(token_manager, payload)
    logger.info("Token refresh requested for %s", mask_secret(payload.username))
    credential = await token_manager.refresh(
        username=payload.username, password=payload.password
    )
    return _login_response(token_manager, credential)


@router.post("/cotizar", status_code=HTTPStatus.OK)
async def cotizar(
    payload: QuoteRequest,
    token_manager: Annotated[Any, Depends(get_token_manager)],
    gateway: Annotated[Any, Depends(get_andreani_gateway)],
) -> dict:
    """Quote a shipment. Public tariff quotes need no token."""
    if payload.params is None:
        raise ValidationError("Quote parameters (params) are required.")

    credential: Optional[Credential] = None
    if payload.token or gateway.quote_requires_token:
        credential = await token_manager.get_token(
            username=payload.username,
            password=payload.password,
            explicit_token=payload.token,
        )

    try:
        tariffs = await gateway.quote(payload.params, credential)
    except AuthError as exc:
        if exc.code is AuthErrorCode.TOKEN_EXPIRED and not payload.token:
            token_manager.invalidate()
        raise

    return {"success": True, "data": tariffs}


@router.post("/crear-envio", status_code=HTTPStatus.OK)
async def crear_envio(
    payload: ShipmentRequest,
    token_manager: Annotated[Any, Depends(get_token_manager)],
    gateway: Annotated[Any, Depends(get_andreani_gateway)],
) -> dict:
    """Create a shipment with the Andreani payload passed through untouched."""
    if payload.envio is None:
        raise ValidationError("Shipment payload (envio) is required.")

    credential = await token_manager.get_token(
        username=payload.username,
        password=payload.password,
        explicit_token=payload.token,
    )
    data = await gateway.create_shipment(payload.envio, credential)
    return {"success": True, "data": data}


__all__ = ["router"]
