from __future__ import annotations

import asyncio
import logging
import time

import httpx
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_ollama import ChatOllama

from agents.core.errors import UpstreamProtocolError, UpstreamShapeError
from agents.core.llm import LLM, GenerationRequest, GenerationResult

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:11434"
DEFAULT_TIMEOUT = 120.0


def to_langchain_messages(request: GenerationRequest) -> list[BaseMessage]:
    out: list[BaseMessage] = []
    for m in request.messages:
        if m.role == "system":
            out.append(SystemMessage(content=m.content))
        elif m.role == "assistant":
            out.append(AIMessage(content=m.content))
        else:
            out.append(HumanMessage(content=m.content))
    return out


class OllamaLLM(LLM):
    """
    Local generation collaborator for development without a hosted API key.
    Ignores provider-specific extra_body (no web search); the model id in the
    request is replaced by the locally pulled model.
    """

    def __init__(
        self,
        model: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        check_connection: bool = True,
    ):
        self.model = model
        self.base_url = base_url
        self.timeout = timeout
        self.check_connection = check_connection

    def _chat(self, request: GenerationRequest) -> ChatOllama:
        return ChatOllama(
            model=self.model,
            temperature=request.temperature,
            num_predict=request.max_tokens,
            base_url=self.base_url,
        )

    async def _ensure_available(self) -> None:
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                response = await client.get(f"{self.base_url}/api/tags")
        except httpx.HTTPError as e:
            logger.error("Ollama connection check failed: %s. Is Ollama running?", e)
            raise UpstreamProtocolError(f"Cannot connect to Ollama at {self.base_url}", body=str(e)) from e
        if response.status_code != 200:
            raise UpstreamProtocolError(
                f"Ollama API returned status {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

    async def complete(self, request: GenerationRequest) -> GenerationResult:
        if self.check_connection:
            await self._ensure_available()

        start_time = time.time()
        try:
            message = await asyncio.wait_for(
                self._chat(request).ainvoke(to_langchain_messages(request)),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            elapsed = time.time() - start_time
            logger.error("generation purpose=%s outcome=timeout elapsed=%.2fs", request.purpose, elapsed)
            raise UpstreamProtocolError(f"Ollama call timed out after {self.timeout}s") from None

        elapsed = time.time() - start_time
        text = getattr(message, "content", "")
        if not isinstance(text, str) or not text.strip():
            logger.error("generation purpose=%s outcome=bad_shape elapsed=%.2fs", request.purpose, elapsed)
            raise UpstreamShapeError("Ollama returned an empty completion")

        logger.info("generation purpose=%s attempt=1 outcome=ok elapsed=%.2fs chars=%s", request.purpose, elapsed, len(text))
        if elapsed > 60:
            logger.warning("LLM call took %.2fs - consider a smaller local model", elapsed)
        return GenerationResult(text=text, model=self.model, attempts=1)
