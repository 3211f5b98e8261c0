"""Remote model service: embeddings and chat completions.

The core talks to the model provider through the two-method
:class:`ModelService` protocol. :class:`HttpModelService` implements it over an
OpenAI-compatible HTTP API (Groq by default). Failures surface as
:class:`~askdocs.core.errors.ServiceResponseError` (``RateLimitedError`` for
HTTP 429); retry policy belongs to the callers.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence

import httpx

from askdocs.core.config import Settings
from askdocs.core.errors import ConfigurationError, RateLimitedError, ServiceResponseError
from askdocs.core.logging import ctx, get_logger

logger = get_logger(__name__)

PROVIDER_NAME = "model-service"


class ModelService(Protocol):
    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        ...

    async def complete(self, messages: Sequence[dict[str, str]], **params: Any) -> str:
        ...


class HttpModelService:
    """Async client for an OpenAI-compatible API."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None,
        embedding_model: str,
        chat_model: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("Model service API key is not configured", provider_name=PROVIDER_NAME)
        self.base_url = base_url.rstrip("/")
        self.embedding_model = embedding_model
        self.chat_model = chat_model
        self.timeout = timeout
        self._api_key = api_key
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> "HttpModelService":
        return cls(
            base_url=settings.api_base_url,
            api_key=settings.api_key,
            embedding_model=settings.embedding_model,
            chat_model=settings.chat_model,
            timeout=settings.request_timeout,
            transport=transport,
        )

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        payload = {
            "model": self.embedding_model,
            "input": list(texts),
            "encoding_format": "float",
        }
        data = await self._post("/embeddings", payload)
        try:
            items = sorted(data["data"], key=lambda item: item.get("index", 0))
            return [list(item["embedding"]) for item in items]
        except (KeyError, TypeError, AttributeError) as exc:
            raise ServiceResponseError(200, f"Malformed embedding response: {exc}", provider_name=PROVIDER_NAME) from exc

    async def complete(self, messages: Sequence[dict[str, str]], **params: Any) -> str:
        payload: dict[str, Any] = {"model": self.chat_model, "messages": list(messages)}
        payload.update(params)
        data = await self._post("/chat/completions", payload)
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ServiceResponseError(200, f"Malformed completion response: {exc}", provider_name=PROVIDER_NAME) from exc
        if not isinstance(content, str):
            raise ServiceResponseError(200, "Completion has no text content", provider_name=PROVIDER_NAME)
        return content

    async def _post(self, path: str, payload: dict[str, Any]) -> Any:
        headers = {"Authorization": f"Bearer {self._api_key}"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(f"{self.base_url}{path}", json=payload, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Model service unreachable", extra=ctx(path=path, error=str(exc)))
            raise ServiceResponseError(None, str(exc), provider_name=PROVIDER_NAME) from exc

        if response.status_code == 429:
            raise RateLimitedError(response.text, provider_name=PROVIDER_NAME)
        if response.is_error:
            logger.error(
                "Model service error",
                extra=ctx(path=path, status=response.status_code, error=response.text),
            )
            raise ServiceResponseError(response.status_code, response.text, provider_name=PROVIDER_NAME)
        try:
            return response.json()
        except ValueError as exc:
            raise ServiceResponseError(response.status_code, "Response body is not JSON", provider_name=PROVIDER_NAME) from exc


__all__ = ["ModelService", "HttpModelService", "PROVIDER_NAME"]
