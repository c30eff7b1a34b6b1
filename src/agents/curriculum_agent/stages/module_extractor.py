from __future__ import annotations

import logging
from typing import List, Optional

from agents.core.errors import GenerationError
from agents.core.llm import LLM, build_request
from agents.curriculum_agent import prompts
from agents.curriculum_agent.schemas import (
    CurriculumModule,
    DiscoveredSource,
    PipelineSettings,
    modules_from_payload,
)
from agents.curriculum_agent.stages.json_extractor import extract_list

logger = logging.getLogger(__name__)


class ModuleExtractor:
    """Segments one source's raw text into ordered modules attributed to that source."""

    def __init__(self, llm: LLM, settings: Optional[PipelineSettings] = None):
        self.llm = llm
        self.settings = settings or PipelineSettings()

    async def extract_modules(self, source: DiscoveredSource) -> List[CurriculumModule]:
        if not source.has_content:
            return []
        system, user = prompts.module_extraction_prompt(source)
        request = build_request(
            self.settings.model,
            system,
            user,
            temperature=0.1,
            max_tokens=self.settings.extract_max_tokens,
            purpose="extract",
        )
        try:
            result = await self.llm.complete(request)
        except GenerationError as e:
            logger.warning("module extraction failed url=%s: %s", source.url, e)
            return []

        modules = modules_from_payload(
            extract_list(result.text, "modules"),
            default_source=source.institution,
            default_url=source.url,
        )
        # Attribution always points at the source that was segmented.
        for m in modules:
            if source.url not in m.source_urls:
                m.source_urls = [source.url] + m.source_urls
        logger.info("extracted url=%s modules=%s", source.url, len(modules))
        return modules
