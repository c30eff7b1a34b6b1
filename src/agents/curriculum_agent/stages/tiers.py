"""
Tier 2 (platform aggregation) and Tier 3 (generative fallback) plus the
capstone checkpoint weaving applied to every tier's output.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from agents.core.errors import GenerationError
from agents.core.llm import LLM, build_request
from agents.curriculum_agent import prompts
from agents.curriculum_agent.schemas import (
    FALLBACK_SOURCE_URL,
    CourseGrammar,
    CurriculumModule,
    DiscoveredSource,
    PipelineSettings,
    modules_from_payload,
)
from agents.curriculum_agent.sources import SourceDefinition, source_from_url
from agents.curriculum_agent.stages.json_extractor import ExtractionFailure, extract_json
from agents.curriculum_agent.stages.merger import ensure_final_capstone, make_capstone

logger = logging.getLogger(__name__)

BACKWARD_DESIGN_SOURCE = "Backward Design Framework"
TIER3_LABEL = "AI-generated using Backward Design framework"
FALLBACK_LABEL = "AI-generated using fallback framework"


@dataclass
class TierOutcome:
    tier: int
    modules: List[CurriculumModule]
    source: str
    source_url: str = ""
    composition_type: Optional[str] = None
    discovered: List[DiscoveredSource] = field(default_factory=list)

    def content_count(self) -> int:
        return sum(1 for m in self.modules if not m.is_capstone)


def weave_capstone_checkpoints(
    modules: List[CurriculumModule],
    topic: str,
    *,
    checkpoints: bool = True,
) -> List[CurriculumModule]:
    """
    Insert project checkpoints after the 1/3 and 2/3 marks of the content steps
    and guarantee a final capstone.

    Capstones already in the list keep their slots and are not counted as steps.
    With checkpoints=False (a merged or synthesized Tier 1 curriculum) only the
    trailing capstone is guaranteed.
    """
    if not checkpoints:
        return ensure_final_capstone(list(modules), topic)

    total = sum(1 for m in modules if not m.is_capstone)
    planning_after = total // 3 - 1
    draft_after = (total * 2) // 3 - 1
    woven: List[CurriculumModule] = []
    step = 0
    for module in modules:
        woven.append(module)
        if module.is_capstone:
            continue
        if step == planning_after:
            woven.append(make_capstone(f"Capstone Checkpoint: Project Planning for {topic}"))
        if step == draft_after:
            woven.append(make_capstone("Capstone Checkpoint: Draft & Peer Review"))
        step += 1
    return ensure_final_capstone(woven, topic)


def fallback_template(topic: str) -> List[CurriculumModule]:
    """Eight-step generic structure with no external dependency."""
    steps = [
        ("Module 1 - Step 1", f"Introduction to {topic}", "Theory"),
        ("Module 1 - Step 2", f"Foundational Concepts in {topic}", "Theory"),
        ("Module 2 - Step 1", "Core Methodologies", "Application"),
        ("Module 2 - Step 2", "Practical Applications", "Application"),
        ("Module 2 - Step 3", "Advanced Techniques & Analysis", "Application"),
        ("Module 3 - Step 1", "Integration & Cross-Disciplinary Connections", "Synthesis"),
        ("Module 3 - Step 2", "Contemporary Issues & Debates", "Synthesis"),
        ("Module 3 - Step 3", "Synthesis & Future Directions", "Synthesis"),
    ]
    return [
        CurriculumModule(
            title=f"{label}: {name}",
            tag=tag,
            source=BACKWARD_DESIGN_SOURCE,
            source_urls=[FALLBACK_SOURCE_URL],
        )
        for label, name, tag in steps
    ]


class PlatformAggregator:
    """Tier 2: one combined discovery + extraction call against MOOC/OER platforms."""

    def __init__(self, llm: LLM, settings: Optional[PipelineSettings] = None):
        self.llm = llm
        self.settings = settings or PipelineSettings()

    async def aggregate(self, topic: str, platforms: Sequence[SourceDefinition]) -> Optional[TierOutcome]:
        system, user = prompts.platform_aggregation_prompt(topic, platforms)
        extra = {"return_citations": True}
        if platforms:
            extra["search_domain_filter"] = sorted({p.domain.split("/", 1)[0] for p in platforms})
        request = build_request(
            self.settings.model,
            system,
            user,
            temperature=0.2,
            max_tokens=self.settings.discovery_max_tokens,
            purpose="tier2",
            extra_body=extra,
        )
        try:
            result = await self.llm.complete(request)
        except GenerationError as e:
            logger.warning("tier 2 call failed topic=%r: %s", topic, e)
            return None

        parsed = extract_json(result.text)
        if isinstance(parsed, ExtractionFailure):
            logger.warning("tier 2 response unparseable topic=%r", topic)
            return None
        modules = modules_from_payload(parsed.get("modules"))
        raw_urls = parsed.get("aggregatedFrom")
        aggregated = [u.strip() for u in raw_urls if isinstance(u, str) and u.strip()] if isinstance(raw_urls, list) else []
        source_url = aggregated[0] if aggregated else next(
            (m.source_urls[0] for m in modules if m.source_urls), ""
        )
        return TierOutcome(
            tier=2,
            modules=modules,
            source=f"Aggregated from {len(aggregated) or 'multiple'} online courses",
            source_url=source_url,
            discovered=[source_from_url(u) for u in aggregated],
        )


class CourseDesigner:
    """Tier 3: design a course from general knowledge, else the hardcoded template."""

    def __init__(self, llm: LLM, settings: Optional[PipelineSettings] = None):
        self.llm = llm
        self.settings = settings or PipelineSettings()

    async def design(self, topic: str, grammar: Optional[CourseGrammar] = None) -> TierOutcome:
        modules = await self._design_with_model(topic, grammar)
        if modules:
            return TierOutcome(tier=3, modules=modules, source=TIER3_LABEL, source_url=FALLBACK_SOURCE_URL)
        logger.warning("tier 3 design unavailable topic=%r; using fallback template", topic)
        return TierOutcome(
            tier=3, modules=fallback_template(topic), source=FALLBACK_LABEL, source_url=FALLBACK_SOURCE_URL
        )

    async def _design_with_model(self, topic: str, grammar: Optional[CourseGrammar]) -> List[CurriculumModule]:
        system, user = prompts.course_design_prompt(topic, grammar)
        request = build_request(
            self.settings.model,
            system,
            user,
            temperature=0.4,
            max_tokens=self.settings.discovery_max_tokens,
            purpose="tier3",
        )
        try:
            result = await self.llm.complete(request)
        except GenerationError as e:
            logger.warning("tier 3 call failed topic=%r: %s", topic, e)
            return []
        parsed = extract_json(result.text)
        if isinstance(parsed, ExtractionFailure):
            return []
        return modules_from_payload(
            parsed.get("modules"),
            default_source=BACKWARD_DESIGN_SOURCE,
            default_url=FALLBACK_SOURCE_URL,
        )
