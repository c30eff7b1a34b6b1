from functools import lru_cache
from typing import Optional

from agents.core.llm import LLM
from api.config import Settings, get_settings

from infra.llm.ollama import OllamaLLM
from infra.llm.perplexity import PerplexityLLM


def build_llm(settings: Optional[Settings] = None) -> LLM:
    """Generation collaborator for the configured provider."""
    settings = settings or get_settings()

    if settings.generation_provider == "ollama":
        return OllamaLLM(
            model=settings.ollama_model,
            base_url=settings.ollama_base_url,
        )

    return PerplexityLLM(
        api_key=settings.perplexity_api_key or "",
        base_url=settings.perplexity_base_url,
        base_delay=settings.rate_limit_delay_seconds,
        max_retries=settings.max_retries,
        timeout=settings.request_timeout_seconds,
    )


@lru_cache
def _shared_llm() -> LLM:
    return build_llm()


def get_llm() -> LLM:
    """FastAPI dependency: one collaborator per process (the hosted client keeps a connection pool)."""
    return _shared_llm()


async def close_llm() -> None:
    if _shared_llm.cache_info().currsize:
        await _shared_llm().aclose()
        _shared_llm.cache_clear()
