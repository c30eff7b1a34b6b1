"""
Source discovery: ask the model to enumerate real syllabi for a topic.

Returned URLs are NOT verified to exist or to belong to the claimed domain;
callers must treat them as model claims.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from agents.core.errors import GenerationError
from agents.core.llm import LLM, build_request
from agents.curriculum_agent import prompts
from agents.curriculum_agent.schemas import (
    AuthorityDiscovery,
    DiscoveredSource,
    PipelineSettings,
    TopicPillar,
)
from agents.curriculum_agent.sources import SourceDefinition, host_of, lookup_by_url
from agents.curriculum_agent.stages.json_extractor import extract_list

logger = logging.getLogger(__name__)


def parse_sources(raw_sources: List[Any], default_type: str = "University OpenCourseWare") -> List[DiscoveredSource]:
    out: List[DiscoveredSource] = []
    for raw in raw_sources:
        if not isinstance(raw, dict):
            continue
        url = raw.get("url")
        if not isinstance(url, str) or not url.strip():
            continue
        institution = raw.get("institution") or raw.get("name") or url
        out.append(
            DiscoveredSource(
                institution=str(institution).strip(),
                course_name=str(raw.get("courseName") or raw.get("course_name") or "").strip(),
                url=url.strip(),
                source_type=str(raw.get("type") or default_type).strip(),
            )
        )
    return merge_sources(out)


def merge_sources(*groups: Sequence[DiscoveredSource]) -> List[DiscoveredSource]:
    """URL-deduplicating union; first occurrence wins, order preserved."""
    seen: set[str] = set()
    out: List[DiscoveredSource] = []
    for group in groups:
        for source in group:
            key = source.url.rstrip("/").lower()
            if key in seen:
                continue
            seen.add(key)
            out.append(source)
    return out


class SourceDiscoverer:
    def __init__(self, llm: LLM, settings: Optional[PipelineSettings] = None):
        self.llm = llm
        self.settings = settings or PipelineSettings()

    async def discover(
        self,
        topic: str,
        source_allowlist: Sequence[SourceDefinition],
        custom_sources: Sequence[DiscoveredSource] = (),
    ) -> List[DiscoveredSource]:
        if not source_allowlist and not custom_sources:
            logger.info("discovery skipped topic=%r: no sources enabled", topic)
            return []
        system, user = prompts.discovery_prompt(topic, source_allowlist, custom_sources)
        domains = [s.domain.split("/", 1)[0] for s in source_allowlist]
        domains += [_domain_of(c.url) for c in custom_sources]
        extra: Dict[str, Any] = {"return_citations": True}
        if domains:
            extra["search_domain_filter"] = sorted({d for d in domains if d})
        request = build_request(
            self.settings.model,
            system,
            user,
            temperature=0.1,
            max_tokens=self.settings.discovery_max_tokens,
            purpose="discover",
            extra_body=extra,
        )
        try:
            result = await self.llm.complete(request)
        except GenerationError as e:
            logger.warning("discovery failed topic=%r: %s", topic, e)
            return []
        sources = parse_sources(extract_list(result.text, "sources"))
        logger.info("discovery topic=%r found=%s", topic, len(sources))
        return sources

    async def discover_with_authorities(
        self,
        topic: str,
        authorities: AuthorityDiscovery,
        pillars: Sequence[TopicPillar],
    ) -> List[DiscoveredSource]:
        if not authorities.authorities:
            return []
        system, user = prompts.authority_discovery_prompt(topic, authorities.authorities, pillars)
        request = build_request(
            self.settings.model,
            system,
            user,
            temperature=0.1,
            max_tokens=self.settings.discovery_max_tokens,
            purpose="discover_authorities",
            extra_body={
                "return_citations": True,
                "search_domain_filter": sorted({a.domain for a in authorities.authorities if a.domain}),
            },
        )
        try:
            result = await self.llm.complete(request)
        except GenerationError as e:
            logger.warning("authority discovery failed topic=%r: %s", topic, e)
            return []
        sources = parse_sources(extract_list(result.text, "sources"), default_type="Industry Authority")
        logger.info("authority discovery topic=%r found=%s", topic, len(sources))
        return sources


def _domain_of(url: str) -> str:
    match = lookup_by_url(url)
    if match is not None:
        return match.domain.split("/", 1)[0]
    return host_of(url)
