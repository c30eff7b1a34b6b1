"""
Pillar-guided synthesis: select the best material per pillar instead of
unioning every source. Unused sources are expected, so there is no coverage pass.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from agents.core.errors import GenerationError
from agents.core.llm import LLM, build_request
from agents.curriculum_agent import prompts
from agents.curriculum_agent.schemas import (
    CourseGrammar,
    CurriculumModule,
    PipelineSettings,
    TopicComposition,
    modules_from_payload,
)
from agents.curriculum_agent.stages.json_extractor import extract_list
from agents.curriculum_agent.stages.merger import (
    PerSource,
    dedupe_modules,
    ensure_final_capstone,
    restore_attribution,
)

logger = logging.getLogger(__name__)

FALLBACK_MODULES_PER_SOURCE = 3
MAX_SYNTHESIZED_MODULES = 15


def fallback_synthesis(per_source: PerSource, topic: str) -> List[CurriculumModule]:
    """First few modules of every source, deduplicated and capped, capstone last."""
    picked: List[CurriculumModule] = []
    for _, modules in per_source:
        picked.extend(m for m in modules[:FALLBACK_MODULES_PER_SOURCE] if not m.is_capstone)
    picked = dedupe_modules(picked)
    if not picked:
        return []
    return ensure_final_capstone(picked[: MAX_SYNTHESIZED_MODULES - 1], topic)


class PillarSynthesizer:
    def __init__(self, llm: LLM, settings: Optional[PipelineSettings] = None):
        self.llm = llm
        self.settings = settings or PipelineSettings()

    async def synthesize(
        self,
        topic: str,
        composition: TopicComposition,
        per_source: PerSource,
        grammar: Optional[CourseGrammar] = None,
    ) -> List[CurriculumModule]:
        contributing = [(s, mods) for s, mods in per_source if mods]
        if not contributing:
            return []

        system, user = prompts.synthesis_prompt(
            topic, composition.pillars, composition.narrative_flow, contributing, grammar
        )
        request = build_request(
            self.settings.model,
            system,
            user,
            temperature=0.3,
            max_tokens=self.settings.merge_max_tokens,
            purpose="synthesize",
        )
        try:
            result = await self.llm.complete(request)
        except GenerationError as e:
            logger.warning("synthesis call failed topic=%r: %s", topic, e)
            return fallback_synthesis(contributing, topic)

        modules = dedupe_modules(modules_from_payload(extract_list(result.text, "modules")))
        restore_attribution(modules, contributing)
        if not modules:
            logger.warning("synthesis produced nothing topic=%r; using per-source fallback", topic)
            return fallback_synthesis(contributing, topic)

        institutions = {s.url.rstrip("/").lower(): s.institution for s, _ in contributing}
        for m in modules:
            if not m.source and m.source_urls:
                m.source = institutions.get(m.source_urls[0].rstrip("/").lower(), "")
        logger.info("synthesized topic=%r pillars=%s modules=%s", topic, len(composition.pillars), len(modules))
        return ensure_final_capstone(modules, topic)
