"""
Content fetch: ask the model to reproduce the syllabus text behind a URL.

Hedging detection is a plain substring match and will misfire both ways
(a real syllabus quoting "I cannot" gets rejected, a polite fabrication
passes). The predicate is injectable so the phrase list can be tuned alone.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from agents.core.errors import GenerationError
from agents.core.llm import LLM, build_request
from agents.curriculum_agent import prompts
from agents.curriculum_agent.schemas import EXTRACTION_FAILED, PipelineSettings

logger = logging.getLogger(__name__)

HEDGING_PHRASES: tuple[str, ...] = (
    "i'm sorry",
    "i am sorry",
    "i apologize",
    "i cannot",
    "i can't",
    "i am unable",
    "i'm unable",
    "unable to access",
    "i don't have access",
    "i do not have access",
    "cannot browse",
    "as an ai",
    "not able to retrieve",
)


def looks_like_hedging(text: str, phrases: Sequence[str] = HEDGING_PHRASES) -> bool:
    lowered = text.lower()
    return any(p in lowered for p in phrases)


class ContentFetcher:
    def __init__(
        self,
        llm: LLM,
        settings: Optional[PipelineSettings] = None,
        is_hedging: Callable[[str], bool] = looks_like_hedging,
    ):
        self.llm = llm
        self.settings = settings or PipelineSettings()
        self.is_hedging = is_hedging

    async def fetch_content(self, url: str, topic: str) -> str:
        """Syllabus text, EXTRACTION_FAILED for evasive prose, '' when the call itself failed."""
        system, user = prompts.fetch_content_prompt(url, topic)
        request = build_request(
            self.settings.model,
            system,
            user,
            temperature=0.1,
            max_tokens=self.settings.fetch_max_tokens,
            purpose="fetch",
        )
        try:
            result = await self.llm.complete(request)
        except GenerationError as e:
            logger.warning("fetch failed url=%s: %s", url, e)
            return ""

        text = result.text.strip()
        if not text:
            return ""
        if self.is_hedging(text):
            logger.info("fetch url=%s returned hedging prose; marking as extraction failure", url)
            return EXTRACTION_FAILED
        logger.debug("fetch url=%s chars=%s", url, len(text))
        return text
