"""
Private quotes over the Andreani ``hubCotizacion`` SignalR hub.

The PyMEs portal does not expose its quote as a REST endpoint: the browser
opens a WebSocket to the hub with the bearer token in the ``access_token``
query parameter and invokes ``Cotizar`` with the quote body. One connection
is opened per quote and torn down as soon as the completion arrives.
"""

from __future__ import annotations

import asyncio
import logging
from http import HTTPStatus
from typing import Any, Callable, Dict, Optional, Protocol
from urllib.parse import urlencode

from pysignalr.client import SignalRClient
from pysignalr.exceptions import AuthorizationError
from pysignalr.messages import CompletionMessage

from andreani_proxy.core.config import AndreaniSettings
from andreani_proxy.core.errors import AuthError, AuthErrorCode, CarrierError
from andreani_proxy.models.token import Credential

logger = logging.getLogger(__name__)

QUOTE_METHOD = "Cotizar"

ClientFactory = Callable[..., SignalRClient]


class QuoteHub(Protocol):
    """Invokes a hub method and returns its completion result."""

    async def invoke(self, method: str, payload: Dict[str, Any], credential: Credential) -> Any:
        ...


class SignalRQuoteHub:
    """pysignalr client for the quote hub."""

    def __init__(
        self,
        settings: AndreaniSettings,
        *,
        client_factory: ClientFactory = SignalRClient,
    ) -> None:
        self._hub_url = str(settings.quote_hub_url)
        self._timeout = settings.http_timeout
        self._client_factory = client_factory

    def _url(self, credential: Credential) -> str:
        if credential.session_only:
            return self._hub_url
        separator = "&" if "?" in self._hub_url else "?"
        return f"{self._hub_url}{separator}{urlencode({'access_token': credential.token})}"

    @staticmethod
    def _headers(credential: Credential) -> Dict[str, str]:
        if not credential.session_only or not credential.cookies:
            return {}
        cookie = "; ".join(f"{name}={value}" for name, value in credential.cookies.items())
        return {"Cookie": cookie}

    async def invoke(self, method: str, payload: Dict[str, Any], credential: Credential) -> Any:
        client = self._client_factory(self._url(credential), headers=self._headers(credential))
        outcome: asyncio.Future[Any] = asyncio.get_running_loop().create_future()

        async def on_completion(message: CompletionMessage) -> None:
            if outcome.done():
                return
            if message.error:
                outcome.set_exception(
                    CarrierError(
                        HTTPStatus.BAD_GATEWAY, message.error, "Andreani rejected the quote."
                    )
                )
            else:
                outcome.set_result(message.result)

        async def on_open() -> None:
            logger.info("Connected to the Andreani quote hub, invoking %s", method)
            await client.send(method, [payload], on_invocation=on_completion)

        client.on_open(on_open)
        client.on_error(on_completion)

        runner = asyncio.ensure_future(client.run())
        try:
            done, _ = await asyncio.wait(
                {runner, outcome},
                timeout=self._timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
            if outcome in done:
                return outcome.result()
            if runner in done:
                raise self._connection_failure(runner.exception())
            raise CarrierError(
                HTTPStatus.GATEWAY_TIMEOUT,
                None,
                f"Andreani quote hub did not answer within {self._timeout:g} seconds.",
            )
        finally:
            runner.cancel()
            await asyncio.gather(runner, return_exceptions=True)
            if not outcome.done():
                outcome.cancel()

    @staticmethod
    def _connection_failure(exc: Optional[BaseException]) -> Exception:
        if isinstance(exc, AuthorizationError):
            logger.warning("Andreani quote hub refused the token")
            return AuthError(AuthErrorCode.TOKEN_EXPIRED, "Andreani rejected the token.")
        logger.error("Andreani quote hub connection closed: %s", exc)
        return CarrierError(
            HTTPStatus.BAD_GATEWAY,
            str(exc) if exc else None,
            "Connection to the Andreani quote hub failed.",
        )


__all__ = ["QUOTE_METHOD", "QuoteHub", "SignalRQuoteHub"]
