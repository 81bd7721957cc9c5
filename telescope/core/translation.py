"""HTTP client for the natural-language → search-command translation service."""

from typing import Optional

import httpx
from loguru import logger
from pydantic import ValidationError

from .config import TranslationConfig
from .errors import (
    DecodingError, InvalidEndpoint, NoConnectivity, ServerError,
    Timeout, UnknownTransport
)
from .models import TranslationRequest, TranslationResponse


class TranslationClient:
    """
    Sends a query to the translation endpoint and decodes the reply.

    One attempt per call; retrying is up to the caller. Every failure is
    raised as a distinct TranslationError subclass.
    """

    def __init__(
        self,
        config: TranslationConfig,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.config = config
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "TranslationClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def build_request(self, query: str) -> TranslationRequest:
        return TranslationRequest(
            query=query,
            model_type=self.config.model_type,
            model=self.config.model
        )

    def _endpoint_url(self) -> httpx.URL:
        endpoint = self.config.endpoint.strip()
        try:
            url = httpx.URL(endpoint)
        except httpx.InvalidURL as e:
            raise InvalidEndpoint(endpoint) from e
        if url.scheme not in ("http", "https") or not url.host:
            raise InvalidEndpoint(endpoint)
        return url

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout_s)
        return self._client

    async def translate(self, query: str) -> TranslationResponse:
        """Translate ``query`` into a structured search command."""
        url = self._endpoint_url()
        payload = self.build_request(query).to_dict()

        try:
            response = await self._get_client().post(
                url,
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self.config.timeout_s
            )
        except httpx.TimeoutException as e:
            raise Timeout(str(e) or "Translation request timed out") from e
        except (httpx.ConnectError, httpx.NetworkError) as e:
            raise NoConnectivity(str(e) or "Cannot reach translation endpoint") from e
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            raise InvalidEndpoint(str(url)) from e
        except httpx.HTTPError as e:
            raise UnknownTransport(e) from e

        if not 200 <= response.status_code <= 299:
            logger.warning(f"Translation endpoint returned HTTP {response.status_code}")
            raise ServerError(response.status_code)

        try:
            body = response.json()
        except ValueError as e:
            raise DecodingError(f"Response is not JSON: {e}") from e

        try:
            result = TranslationResponse.model_validate(body)
        except ValidationError as e:
            raise DecodingError(f"Unexpected response shape: {e}") from e

        logger.debug(f"Translated {query!r} → {result.search_command!r}")
        return result
