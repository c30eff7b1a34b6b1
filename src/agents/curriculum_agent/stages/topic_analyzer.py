"""
Topic composition analysis: classify a topic and split it into pedagogical pillars.
Any failure yields the generic four-pillar analysis.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from pydantic import ValidationError

from agents.core.errors import GenerationError
from agents.core.llm import LLM, build_request
from agents.curriculum_agent import prompts
from agents.curriculum_agent.schemas import PipelineSettings, TopicComposition, TopicPillar
from agents.curriculum_agent.stages.json_extractor import ExtractionFailure, extract_json

logger = logging.getLogger(__name__)

DEFAULT_NARRATIVE_FLOW = "Foundations → Core Concepts → Advanced Topics → Application"


def default_pillars(topic: str) -> List[TopicPillar]:
    return [
        TopicPillar(
            name="Foundations",
            search_terms=[f"{topic} fundamentals", f"introduction to {topic}"],
            recommended_sources=["coursera.org", "edx.org", "ocw.mit.edu"],
            priority="core",
        ),
        TopicPillar(
            name="Core Concepts",
            search_terms=[f"{topic} core concepts", f"{topic} theory"],
            recommended_sources=["coursera.org", "edx.org"],
            priority="core",
        ),
        TopicPillar(
            name="Practical Application",
            search_terms=[f"{topic} practical", f"{topic} hands-on"],
            recommended_sources=["coursera.org", "udemy.com"],
            priority="important",
        ),
        TopicPillar(
            name="Advanced Topics",
            search_terms=[f"advanced {topic}", f"{topic} deep dive"],
            recommended_sources=["coursera.org", "ocw.mit.edu"],
            priority="nice_to_have",
        ),
    ]


def default_composition(topic: str) -> TopicComposition:
    return TopicComposition(
        composition_type="single",
        pillars=default_pillars(topic),
        narrative_flow=DEFAULT_NARRATIVE_FLOW,
        recommended_sources=["coursera.org", "edx.org", "ocw.mit.edu"],
    )


class TopicAnalyzer:
    def __init__(self, llm: LLM, settings: Optional[PipelineSettings] = None):
        self.llm = llm
        self.settings = settings or PipelineSettings()

    async def analyze(self, topic: str) -> TopicComposition:
        system, user = prompts.topic_analysis_prompt(topic)
        request = build_request(
            self.settings.model, system, user, temperature=0.3, max_tokens=2000, purpose="analyze_topic"
        )
        try:
            result = await self.llm.complete(request)
        except GenerationError as e:
            logger.warning("topic analysis failed topic=%r: %s", topic, e)
            return default_composition(topic)

        parsed = extract_json(result.text)
        if isinstance(parsed, ExtractionFailure):
            logger.warning("topic analysis unparseable topic=%r: %s", topic, parsed.reason)
            return default_composition(topic)
        try:
            composition = TopicComposition.model_validate(parsed)
        except ValidationError as e:
            logger.warning("topic analysis invalid topic=%r: %s", topic, e.error_count())
            return default_composition(topic)

        if not composition.pillars:
            composition.pillars = default_pillars(topic)
        if not composition.narrative_flow.strip():
            composition.narrative_flow = DEFAULT_NARRATIVE_FLOW
        logger.info(
            "topic analysis topic=%r type=%s pillars=%s",
            topic, composition.composition_type, [p.name for p in composition.pillars],
        )
        return composition


async def analyze_topic_composition(
    topic: str, llm: LLM, settings: Optional[PipelineSettings] = None
) -> TopicComposition:
    return await TopicAnalyzer(llm, settings).analyze(topic)
