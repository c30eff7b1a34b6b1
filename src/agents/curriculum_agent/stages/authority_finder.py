"""
Identify the recognised authorities ("standard bearers") for a topic.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from pydantic import ValidationError

from agents.core.errors import GenerationError
from agents.core.llm import LLM, build_request
from agents.curriculum_agent import prompts
from agents.curriculum_agent.schemas import AuthorityDiscovery, DomainAuthority, PipelineSettings
from agents.curriculum_agent.stages.json_extractor import ExtractionFailure, extract_json

logger = logging.getLogger(__name__)

_UX = re.compile(r"\bux\b|user experience|usability", re.IGNORECASE)
_PRODUCT = re.compile(r"product manage(?:ment|r)", re.IGNORECASE)
_DATA = re.compile(r"data science|machine learning|\bai\b", re.IGNORECASE)


def default_authorities(topic: str) -> AuthorityDiscovery:
    if _UX.search(topic):
        return AuthorityDiscovery(
            authorities=[
                DomainAuthority(
                    name="Nielsen Norman Group", domain="nngroup.com", authority_type="industry_standard",
                    authority_reason="Pioneers of UX research and usability heuristics",
                    focus_areas=["Usability", "UX Research", "Heuristics"],
                ),
                DomainAuthority(
                    name="IDEO", domain="ideo.com", authority_type="practitioner",
                    authority_reason="Design firm that pioneered human-centered design",
                    focus_areas=["Design Thinking", "Human-Centered Design"],
                ),
                DomainAuthority(
                    name="Interaction Design Foundation", domain="interaction-design.org", authority_type="academic",
                    authority_reason="Large online design school with industry-recognised courses",
                    focus_areas=["Interaction Design", "UI Design"],
                ),
            ],
            search_strategy="Search nngroup.com, ideo.com and interaction-design.org for UX curriculum and practice",
        )
    if _PRODUCT.search(topic):
        return AuthorityDiscovery(
            authorities=[
                DomainAuthority(
                    name="Silicon Valley Product Group", domain="svpg.com", authority_type="industry_standard",
                    authority_reason="Reference material on product strategy and discovery",
                    focus_areas=["Product Strategy", "Product Discovery"],
                ),
                DomainAuthority(
                    name="Reforge", domain="reforge.com", authority_type="practitioner",
                    authority_reason="Growth and product programs taught by senior practitioners",
                    focus_areas=["Growth", "Product-Led Growth"],
                ),
                DomainAuthority(
                    name="Mind the Product", domain="mindtheproduct.com", authority_type="standard_body",
                    authority_reason="Largest global product management community",
                    focus_areas=["Product Community", "Best Practices"],
                ),
            ],
            search_strategy="Search svpg.com, reforge.com and mindtheproduct.com for product management frameworks",
        )
    if _DATA.search(topic):
        return AuthorityDiscovery(
            authorities=[
                DomainAuthority(
                    name="Google AI", domain="ai.google", authority_type="industry_standard",
                    authority_reason="AI research organisation with open publications",
                    focus_areas=["Machine Learning", "AI Research"],
                ),
                DomainAuthority(
                    name="Kaggle", domain="kaggle.com", authority_type="practitioner",
                    authority_reason="Data science community with competitions and courses",
                    focus_areas=["Practical ML", "Data Analysis"],
                ),
                DomainAuthority(
                    name="Fast.ai", domain="fast.ai", authority_type="academic",
                    authority_reason="Free practical deep learning courses",
                    focus_areas=["Deep Learning", "Practical AI"],
                ),
            ],
            search_strategy="Search ai.google, kaggle.com and fast.ai for data science curriculum",
        )
    return AuthorityDiscovery(
        authorities=[
            DomainAuthority(
                name="Coursera", domain="coursera.org", authority_type="academic",
                authority_reason="University courses from Stanford, Yale and others",
                focus_areas=["Academic Courses"],
            ),
            DomainAuthority(
                name="MIT OpenCourseWare", domain="ocw.mit.edu", authority_type="academic",
                authority_reason="Free course materials from MIT",
                focus_areas=["University Curriculum"],
            ),
        ],
        search_strategy=f"Search coursera.org and ocw.mit.edu for {topic} courses",
    )


class AuthorityFinder:
    def __init__(self, llm: LLM, settings: Optional[PipelineSettings] = None):
        self.llm = llm
        self.settings = settings or PipelineSettings()

    async def identify(self, topic: str) -> AuthorityDiscovery:
        system, user = prompts.authority_prompt(topic)
        request = build_request(
            self.settings.model, system, user, temperature=0.2, max_tokens=2000, purpose="authorities"
        )
        try:
            result = await self.llm.complete(request)
        except GenerationError as e:
            logger.warning("authority identification failed topic=%r: %s", topic, e)
            return default_authorities(topic)

        parsed = extract_json(result.text)
        if isinstance(parsed, ExtractionFailure):
            return default_authorities(topic)
        try:
            found = AuthorityDiscovery.model_validate(parsed)
        except ValidationError as e:
            logger.warning("authority payload invalid topic=%r: %s", topic, e.error_count())
            return default_authorities(topic)

        found.authorities = [a for a in found.authorities if a.domain.strip()]
        if not found.authorities:
            return default_authorities(topic)
        logger.info("authorities topic=%r found=%s", topic, [a.domain for a in found.authorities])
        return found


async def identify_domain_authorities(
    topic: str, llm: LLM, settings: Optional[PipelineSettings] = None
) -> AuthorityDiscovery:
    return await AuthorityFinder(llm, settings).identify(topic)
