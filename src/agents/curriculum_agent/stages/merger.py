"""
Aggregative merge of per-source module lists, plus the deterministic
post-passes shared with pillar synthesis.

Dedup is purely syntactic (prefix strip, lowercase, trim). Two differently
worded steps on the same topic stay separate.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from agents.core.errors import GenerationError
from agents.core.llm import LLM, build_request
from agents.curriculum_agent import prompts
from agents.curriculum_agent.schemas import (
    CAPSTONE_TAG,
    CurriculumModule,
    DiscoveredSource,
    PipelineSettings,
    modules_from_payload,
)
from agents.curriculum_agent.stages.json_extractor import extract_list

logger = logging.getLogger(__name__)

MILESTONE_SOURCE = "Project Milestone"

_TITLE_PREFIX = re.compile(
    r"^\s*(?:module\s*\d+\s*[-–—]\s*step\s*\d+|step\s*\d+|week\s*\d+)\s*:\s*",
    re.IGNORECASE,
)

PerSource = Sequence[Tuple[DiscoveredSource, List[CurriculumModule]]]


def normalize_title(title: str) -> str:
    return _TITLE_PREFIX.sub("", title).strip().lower()


def _url_key(url: str) -> str:
    return url.rstrip("/").lower()


def dedupe_modules(modules: Iterable[CurriculumModule]) -> List[CurriculumModule]:
    """Collapse modules whose normalized titles collide; the first keeps its slot and gains the others' URLs."""
    kept: List[CurriculumModule] = []
    by_key: Dict[str, CurriculumModule] = {}
    for module in modules:
        key = normalize_title(module.title)
        existing = by_key.get(key) if key else None
        if existing is None:
            copy = module.model_copy(deep=True)
            kept.append(copy)
            if key:
                by_key[key] = copy
            continue
        for url in module.source_urls:
            if url not in existing.source_urls:
                existing.source_urls.append(url)
        existing.is_capstone = existing.is_capstone or module.is_capstone
    return kept


def restore_attribution(modules: List[CurriculumModule], per_source: PerSource) -> List[CurriculumModule]:
    """Union onto each module the URLs of every source that yielded a step with the same normalized title."""
    urls_by_title: Dict[str, List[str]] = {}
    for source, extracted in per_source:
        for m in extracted:
            key = normalize_title(m.title)
            if not key:
                continue
            bucket = urls_by_title.setdefault(key, [])
            for url in m.source_urls or [source.url]:
                if url not in bucket:
                    bucket.append(url)
    for m in modules:
        for url in urls_by_title.get(normalize_title(m.title), ()):
            if url not in m.source_urls:
                m.source_urls.append(url)
    return modules


def complete_coverage(
    modules: List[CurriculumModule],
    discovered_urls: Sequence[str],
    window: int = 10,
) -> List[CurriculumModule]:
    """Round-robin every unattributed discovered URL onto the first `window` non-capstone modules."""
    attributed = {_url_key(u) for m in modules for u in m.source_urls}
    missing: List[str] = []
    for url in discovered_urls:
        key = _url_key(url)
        if key and key not in attributed:
            attributed.add(key)
            missing.append(url)
    targets = [m for m in modules if not m.is_capstone][:window]
    if not missing or not targets:
        return modules
    for i, url in enumerate(missing):
        targets[i % len(targets)].source_urls.append(url)
    logger.debug("coverage pass attributed %s unreferenced sources", len(missing))
    return modules


def make_capstone(title: str, description: Optional[str] = None) -> CurriculumModule:
    return CurriculumModule(
        title=title,
        tag=CAPSTONE_TAG,
        source=MILESTONE_SOURCE,
        description=description,
        is_capstone=True,
    )


def final_capstone(topic: str) -> CurriculumModule:
    return make_capstone(
        f"Final Capstone: {topic} Project Presentation",
        f"Bring together everything learned in {topic} into one presented project.",
    )


def ensure_final_capstone(modules: List[CurriculumModule], topic: str) -> List[CurriculumModule]:
    if modules and modules[-1].is_capstone:
        return modules
    return modules + [final_capstone(topic)]


def _attribute_labels(modules: List[CurriculumModule], sources: Sequence[DiscoveredSource]) -> None:
    """Fill an empty `source` label from the first attributed URL's institution."""
    names = {_url_key(s.url): s.institution for s in sources}
    for m in modules:
        if m.source:
            continue
        for url in m.source_urls:
            name = names.get(_url_key(url))
            if name:
                m.source = name
                break


def naive_concatenate(per_source: PerSource) -> List[CurriculumModule]:
    return [m.model_copy(deep=True) for _, modules in per_source for m in modules]


class CurriculumMerger:
    def __init__(self, llm: LLM, settings: Optional[PipelineSettings] = None):
        self.llm = llm
        self.settings = settings or PipelineSettings()

    async def merge(
        self,
        topic: str,
        per_source: PerSource,
        discovered: Sequence[DiscoveredSource] = (),
    ) -> List[CurriculumModule]:
        contributing = [(s, mods) for s, mods in per_source if mods]
        all_sources = list(discovered) or [s for s, _ in per_source]
        discovered_urls = [s.url for s in all_sources]

        merged: List[CurriculumModule] = []
        if contributing:
            merged = await self._merge_with_model(topic, contributing)
            if merged:
                merged = restore_attribution(dedupe_modules(merged), contributing)
            else:
                logger.warning("merge produced nothing topic=%r; concatenating %s sources", topic, len(contributing))
                merged = naive_concatenate(contributing)

        _attribute_labels(merged, all_sources)
        merged = complete_coverage(merged, discovered_urls, self.settings.coverage_module_window)
        if not merged:
            return []
        return ensure_final_capstone(merged, topic)

    async def _merge_with_model(self, topic: str, per_source: PerSource) -> List[CurriculumModule]:
        system, user = prompts.merge_prompt(topic, per_source)
        request = build_request(
            self.settings.model,
            system,
            user,
            temperature=0.2,
            max_tokens=self.settings.merge_max_tokens,
            purpose="merge",
        )
        try:
            result = await self.llm.complete(request)
        except GenerationError as e:
            logger.warning("merge call failed topic=%r: %s", topic, e)
            return []
        return modules_from_payload(extract_list(result.text, "modules"))
