"""
Andreani quote and shipment endpoints.

Two quote request shapes exist: the public tariff calculator, keyed by postal
codes and authenticated with the API key, and the private PyMEs quote keyed by
origin branch and destination, authenticated with a bearer token. Which one is
used is a deployment setting. Private quotes go through the SignalR quote hub
unless a REST quote endpoint is configured.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional
from uuid import uuid4

import httpx

from andreani_proxy.clients.quote_hub import QUOTE_METHOD, QuoteHub, SignalRQuoteHub
from andreani_proxy.core.config import AndreaniSettings
from andreani_proxy.core.errors import AuthError, AuthErrorCode, CarrierError, ValidationError
from andreani_proxy.models.token import Credential
from andreani_proxy.schemas import Bulto, QuoteParams
from andreani_proxy.utils.http import RetryConfig, request_with_retry

if TYPE_CHECKING:
    from andreani_proxy.services.token_manager import TokenManager

logger = logging.getLogger(__name__)


def _parcel(bulto: Bulto) -> Dict[str, Any]:
    return {
        "id": str(uuid4()),
        "altoCm": bulto.alto_cm,
        "anchoCm": bulto.ancho_cm,
        "largoCm": bulto.largo_cm,
        "kilos": bulto.kilos,
        "volumen": bulto.volumen,
        "valorDeclarado": bulto.valor_declarado,
    }


def build_public_tariff_request(params: QuoteParams) -> Dict[str, Any]:
    """Tariff calculator body, keyed by postal codes."""
    body: Dict[str, Any] = {
        "tipoDeEnvioId": params.tipo_de_envio_id,
        "codigoPostalDestino": params.codigo_postal_destino,
        "bultos": [_parcel(bulto) for bulto in params.bultos],
    }
    if params.codigo_postal_origen:
        body["codigoPostalOrigen"] = params.codigo_postal_origen
    return body


def build_private_quote_request(params: QuoteParams) -> Dict[str, Any]:
    """PyMEs quote body, keyed by origin branch and destination."""
    body: Dict[str, Any] = {
        "usuarioId": params.usuario_id or "",
        "tipoDeEnvioId": params.tipo_de_envio_id,
        "sucursalOrigen": params.sucursal_origen,
        "codigoPostalDestino": params.codigo_postal_destino,
        "bultos": [_parcel(bulto) for bulto in params.bultos],
    }
    if params.destinatario:
        body["destinatario"] = params.destinatario
    return body


QUOTE_BUILDERS: Dict[str, Callable[[QuoteParams], Dict[str, Any]]] = {
    "public": build_public_tariff_request,
    "private": build_private_quote_request,
}


def _tariffs(payload: Any) -> List[Any]:
    if payload is None:
        return []
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("tarifas"), list):
        return payload["tarifas"]
    return [payload]


def _body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class AndreaniGateway:
    """Performs the carrier calls on behalf of the HTTP layer."""

    def __init__(
        self,
        settings: AndreaniSettings,
        token_manager: TokenManager,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_config: RetryConfig | None = None,
        hub: QuoteHub | None = None,
    ) -> None:
        if (
            settings.quote_shape == "private"
            and settings.quote_transport == "rest"
            and settings.quote_url is None
        ):
            raise ValueError("ANDREANI_QUOTE_URL is required for REST private quotes.")
        self._settings = settings
        self._token_manager = token_manager
        self._transport = transport
        self._retry_config = retry_config or RetryConfig()
        self._quote_shape = settings.quote_shape
        self._build_quote = QUOTE_BUILDERS[settings.quote_shape]
        self._hub = hub or SignalRQuoteHub(settings)

    @property
    def quote_requires_token(self) -> bool:
        return self._quote_shape == "private"

    async def quote(self, params: QuoteParams, credential: Optional[Credential]) -> List[Any]:
        """Request tariffs; a 401 is reported, never retried here."""
        if self.quote_requires_token and credential is None:
            raise ValidationError("A token or credentials are required to quote.")

        body = self._build_quote(params)
        logger.info(
            "Quoting %s parcel(s) to CP %s (%s shape)",
            len(params.bultos),
            params.codigo_postal_destino,
            self._quote_shape,
        )
        if self.quote_requires_token and self._settings.quote_transport == "signalr":
            return _tariffs(await self._hub.invoke(QUOTE_METHOD, body, credential))

        headers: Dict[str, str] = {}
        if self.quote_requires_token:
            headers.update(credential.auth_headers())
            url = str(self._settings.quote_url)
        else:
            url = str(self._settings.tariff_url)
        if self._settings.api_key:
            headers["x-api-key"] = self._settings.api_key

        response = await self._post(url, body, headers=headers, credential=credential)

        if response.status_code == httpx.codes.UNAUTHORIZED:
            raise AuthError(AuthErrorCode.TOKEN_EXPIRED, "Andreani rejected the token.")
        if not response.is_success:
            raise CarrierError(response.status_code, _body(response))

        try:
            payload = response.json()
        except ValueError as exc:
            raise CarrierError(
                httpx.codes.BAD_GATEWAY,
                response.text,
                "Andreani returned a quote that is not JSON.",
            ) from exc
        return _tariffs(payload)

    async def create_shipment(self, envio: Dict[str, Any], credential: Credential) -> Any:
        """Create a shipment; a 401 invalidates the cached token before failing."""
        headers = credential.auth_headers()
        if self._settings.api_key:
            headers["x-api-key"] = self._settings.api_key
        if credential.session_only:
            logger.info("Creating shipment with session cookies, no bearer token")

        response = await self._post(
            str(self._settings.shipment_url), envio, headers=headers, credential=credential
        )

        if response.status_code == httpx.codes.UNAUTHORIZED:
            self._token_manager.invalidate()
            raise AuthError(AuthErrorCode.TOKEN_EXPIRED, "Andreani rejected the token.")
        if not response.is_success:
            raise CarrierError(response.status_code, _body(response))

        try:
            return response.json()
        except ValueError:
            return {"creado": True, "respuesta": response.text}

    async def _post(
        self,
        url: str,
        body: Dict[str, Any],
        *,
        headers: Dict[str, str],
        credential: Optional[Credential],
    ) -> httpx.Response:
        cookies = credential.cookies if credential is not None and credential.session_only else None
        try:
            async with httpx.AsyncClient(
                timeout=self._settings.http_timeout,
                transport=self._transport,
                cookies=cookies,
            ) as client:
                return await request_with_retry(
                    client.post,
                    url,
                    json=body,
                    headers=headers,
                    retry_config=self._retry_config,
                )
        except httpx.TransportError as exc:
            logger.error("Andreani unreachable at %s: %s", url, exc)
            raise CarrierError(
                httpx.codes.BAD_GATEWAY, str(exc), "Andreani could not be reached."
            ) from exc


__all__ = [
    "AndreaniGateway",
    "QUOTE_BUILDERS",
    "build_private_quote_request",
    "build_public_tariff_request",
]
