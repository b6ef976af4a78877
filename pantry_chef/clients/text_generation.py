"""HTTP client for the text-generation proxy.

The proxy fronts a large-language-model service. Every call is a single POST
with a JSON body {"system": ..., "user": ...}; the proxy answers with either a
wrapped payload ({"recipe": {...}}, {"parameters": {...}}, {"summary": "..."})
or the bare payload, depending on how it is deployed.

This client never retries and never caches: timeout and retry policy belong
to the caller.
"""

import asyncio
import json
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Type, TypeVar

import aiohttp
from pydantic import BaseModel, ValidationError

from pantry_chef.utils.config import TextGenerationConfig, config
from pantry_chef.utils.errors import InvalidResponse, RequestFailed, TransportError
from pantry_chef.utils.logger import logger

ModelT = TypeVar("ModelT", bound=BaseModel)


def decode_payload(body: str, response_model: Type[ModelT], envelope_key: str) -> ModelT:
    """Decode a proxy response body into response_model.

    Tries the wrapped envelope shape ({envelope_key: payload}) first, then the
    bare shape.

    Args:
        body: Raw response body.
        response_model: Pydantic model the caller expects.
        envelope_key: Key wrapping the payload in the envelope shape.

    Returns:
        Validated response_model instance.

    Raises:
        InvalidResponse: If the body is not JSON or matches neither shape.
    """
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, TypeError) as e:
        raise InvalidResponse() from e

    if isinstance(data, dict) and envelope_key in data:
        try:
            return response_model.model_validate(data[envelope_key])
        except ValidationError as e:
            logger.debug(f"Envelope '{envelope_key}' did not match {response_model.__name__}: {e}")

    try:
        return response_model.model_validate(data)
    except ValidationError as e:
        logger.debug(f"Bare payload did not match {response_model.__name__}: {e}")
        raise InvalidResponse() from e


class TextGenerationClient:
    """Send system/user prompt pairs to the configured proxy.

    Args:
        settings: Proxy URL and optional bearer token.
        session: Optional shared aiohttp session. When omitted, a session is
            opened per call and closed afterwards.
        timeout_seconds: Total timeout per call (default: HTTP_TIMEOUT_SECONDS).
    """

    def __init__(
        self,
        settings: TextGenerationConfig,
        session: Optional[aiohttp.ClientSession] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self.settings = settings
        self._session = session
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds or config.HTTP_TIMEOUT_SECONDS)

    @asynccontextmanager
    async def _client_session(self) -> AsyncIterator[aiohttp.ClientSession]:
        if self._session is not None:
            yield self._session
            return
        async with aiohttp.ClientSession() as session:
            yield session

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.settings.api_token:
            headers["Authorization"] = f"Bearer {self.settings.api_token}"
        return headers

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """POST one prompt pair and return the raw response body.

        Raises:
            RequestFailed: If the proxy answers with a non-2xx status.
            TransportError: If no HTTP response was received.
        """
        body = {"system": system_prompt, "user": user_prompt}
        logger.debug(f"Text generation request: {len(system_prompt)}+{len(user_prompt)} prompt chars")

        try:
            async with self._client_session() as session:
                async with session.post(
                    self.settings.proxy_url,
                    json=body,
                    headers=self._headers(),
                    timeout=self.timeout,
                ) as response:
                    status = response.status
                    text = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(str(e) or type(e).__name__) from e

        if not 200 <= status < 300:
            logger.warning(f"Text generation proxy responded with status {status}")
            raise RequestFailed(status)

        return text

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        response_model: Type[ModelT],
        envelope_key: str,
    ) -> ModelT:
        """POST one prompt pair and decode the reply into response_model.

        Raises:
            RequestFailed: Non-2xx status.
            TransportError: No HTTP response.
            InvalidResponse: Body matches neither the envelope nor the bare shape.
        """
        text = await self.complete(system_prompt, user_prompt)
        return decode_payload(text, response_model, envelope_key)
