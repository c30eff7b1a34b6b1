"""
Hosted chat-completions client (Perplexity-compatible /chat/completions).

Throttles every call with a fixed delay, retries 429 responses with exponential
backoff, and validates the response before handing text back to the pipeline.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import httpx

from agents.core.errors import (
    RateLimitExceeded,
    UpstreamProtocolError,
    UpstreamShapeError,
)
from agents.core.llm import LLM, GenerationRequest, GenerationResult

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.perplexity.ai"
RATE_LIMIT_DELAY_SECONDS = 1.0
MAX_RETRIES = 3
DEFAULT_TIMEOUT = 60.0


def backoff_delay(base_delay: float, attempt: int) -> float:
    """Delay before attempt N (1-based): base on the first call, base * 2^(retry-1) on retries."""
    if attempt <= 1:
        return base_delay
    return base_delay * (2 ** (attempt - 2))


class PerplexityLLM(LLM):
    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        base_delay: float = RATE_LIMIT_DELAY_SECONDS,
        max_retries: int = MAX_RETRIES,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if not api_key:
            raise ValueError("PERPLEXITY_API_KEY is not configured")
        self.base_delay = base_delay
        self.max_retries = max(1, max_retries)
        self._sleep = sleep
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def complete(self, request: GenerationRequest) -> GenerationResult:
        payload = request.to_payload()
        for attempt in range(1, self.max_retries + 1):
            await self._sleep(backoff_delay(self.base_delay, attempt))
            try:
                response = await self._client.post("/chat/completions", json=payload, headers=self._headers)
            except httpx.HTTPError as e:
                logger.error("generation purpose=%s attempt=%s outcome=transport_error error=%s", request.purpose, attempt, e)
                raise UpstreamProtocolError(f"Transport error: {e}", body=str(e)) from e

            if response.status_code == 429:
                logger.warning("generation purpose=%s attempt=%s outcome=rate_limited", request.purpose, attempt)
                continue

            if not response.is_success:
                body = response.text
                logger.error(
                    "generation purpose=%s attempt=%s outcome=http_error status=%s body=%s",
                    request.purpose, attempt, response.status_code, body[:500],
                )
                raise UpstreamProtocolError(
                    f"Generation API error: {response.status_code} {response.reason_phrase}",
                    status_code=response.status_code,
                    body=body,
                )

            content_type = response.headers.get("content-type", "")
            if "application/json" not in content_type:
                body = response.text
                logger.error(
                    "generation purpose=%s attempt=%s outcome=non_json content_type=%s body=%s",
                    request.purpose, attempt, content_type, body[:500],
                )
                raise UpstreamProtocolError(
                    f"Generation API returned non-JSON response ({content_type or 'no content-type'})",
                    status_code=response.status_code,
                    body=body,
                )

            try:
                data = response.json()
            except ValueError as e:
                raise UpstreamProtocolError("Generation API returned malformed JSON", status_code=response.status_code, body=response.text) from e

            text = _message_content(data)
            if not text:
                logger.error("generation purpose=%s attempt=%s outcome=bad_shape body=%s", request.purpose, attempt, str(data)[:200])
                raise UpstreamShapeError("Invalid response structure from generation API")

            logger.info("generation purpose=%s attempt=%s outcome=ok chars=%s", request.purpose, attempt, len(text))
            citations = data.get("citations") if isinstance(data, dict) else None
            return GenerationResult(
                text=text,
                model=data.get("model") if isinstance(data, dict) else None,
                citations=[c for c in citations or [] if isinstance(c, str)],
                attempts=attempt,
            )

        logger.error("generation purpose=%s outcome=rate_limit_exhausted attempts=%s", request.purpose, self.max_retries)
        raise RateLimitExceeded(self.max_retries)


def _message_content(data: Any) -> str:
    """choices[0].message.content, or '' when the path is missing or empty."""
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str):
        return ""
    return content if content.strip() else ""
