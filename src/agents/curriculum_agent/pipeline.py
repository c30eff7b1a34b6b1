"""
Curriculum pipeline: cache lookup -> tier graph -> cache write -> pruning.

Tier 1 flow: discover -> fetch + extract (bounded fan-out) -> merge.
Authority-guided Tier 1: analysis -> course grammar -> discovery -> fetch + extract -> pillar synthesis.
Result: CurriculumResult with the full annotated module list and PruningStats.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from agents.core.llm import LLM
from agents.curriculum_agent.cache import CurriculumCache
from agents.curriculum_agent.graph import build_tier_graph
from agents.curriculum_agent.pruning import prune_curriculum
from agents.curriculum_agent.schemas import (
    CourseGrammar,
    CurriculumModule,
    CurriculumResult,
    DiscoveredSource,
    GenerateOptions,
    PipelineSettings,
    TopicComposition,
)
from agents.curriculum_agent.sources import (
    direct_tier,
    enabled_sources,
    platform_tier,
    source_from_custom,
    source_from_url,
)
from agents.curriculum_agent.stages import (
    AuthorityFinder,
    ContentFetcher,
    CourseDesigner,
    CourseGrammarDesigner,
    CurriculumMerger,
    ModuleExtractor,
    PillarSynthesizer,
    PlatformAggregator,
    SourceDiscoverer,
    TierOutcome,
    TopicAnalyzer,
    validate_course_grammar,
)
from agents.curriculum_agent.stages.source_discoverer import merge_sources
from agents.curriculum_agent.stages.tiers import FALLBACK_LABEL

logger = logging.getLogger(__name__)

EventCallback = Callable[[str, Dict[str, Any]], None]


class CurriculumPipeline:
    def __init__(
        self,
        llm: LLM,
        settings: Optional[PipelineSettings] = None,
        event_callback: Optional[EventCallback] = None,
    ):
        self.llm = llm
        self.settings = settings or PipelineSettings()
        self._emit = event_callback or (lambda _t, _d: None)
        self.discoverer = SourceDiscoverer(llm, self.settings)
        self.fetcher = ContentFetcher(llm, self.settings)
        self.extractor = ModuleExtractor(llm, self.settings)
        self.merger = CurriculumMerger(llm, self.settings)
        self.synthesizer = PillarSynthesizer(llm, self.settings)
        self.analyzer = TopicAnalyzer(llm, self.settings)
        self.authority_finder = AuthorityFinder(llm, self.settings)
        self.grammar_designer = CourseGrammarDesigner(llm, self.settings)
        self.aggregator = PlatformAggregator(llm, self.settings)
        self.designer = CourseDesigner(llm, self.settings)
        # Set by authority-guided Tier 1; read by synthesis and Tier 3 design.
        self.course_grammar: Optional[CourseGrammar] = None
        self._graph = build_tier_graph(self)

    def emit(self, event_type: str, data: Dict[str, Any]) -> None:
        self._emit(event_type, data)

    async def acquire(self, topic: str, options: GenerateOptions) -> Tuple[TierOutcome, List[DiscoveredSource]]:
        """Run the tier graph; returns the woven outcome and every source seen along the way."""
        final = await self._graph.ainvoke(
            {"topic": topic, "options": options, "outcome": None, "raw_sources": [], "tiers_tried": []}
        )
        return final["outcome"], list(final.get("raw_sources") or [])

    # ----- Tier 1 -----

    async def run_direct_tier(self, topic: str, options: GenerateOptions) -> Optional[TierOutcome]:
        composition: Optional[TopicComposition] = None
        if options.use_authority_guided_discovery:
            composition, discovered = await self._authority_guided_sources(topic, options)
        else:
            discovered = await self._plain_sources(topic, options)

        if not discovered:
            logger.info("tier 1 topic=%r: no sources discovered", topic)
            return None

        per_source, raw_sources = await self._fetch_and_extract(topic, discovered)

        self.emit("stage_start", {"stage": "merge", "sources_count": len(per_source)})
        merge_info: Dict[str, Any] = {"stage": "merge"}
        if composition is not None:
            modules = await self.synthesizer.synthesize(topic, composition, per_source, self.course_grammar)
            if self.course_grammar is not None and modules:
                validation = validate_course_grammar(modules, self.course_grammar)
                merge_info["grammar_score"] = validation.score
                log = logger.info if validation.valid else logger.warning
                log(
                    "course grammar check topic=%r score=%s violations=%s",
                    topic, validation.score, validation.violations,
                )
        else:
            modules = await self.merger.merge(topic, per_source, raw_sources)
        merge_info["modules_count"] = len(modules)
        self.emit("stage_complete", merge_info)

        contributing = [s for s, mods in per_source if mods]
        return TierOutcome(
            tier=1,
            modules=modules,
            source=_direct_label(contributing, composition),
            source_url=contributing[0].url if contributing else "",
            composition_type=composition.composition_type if composition is not None else None,
            discovered=raw_sources,
        )

    async def _plain_sources(self, topic: str, options: GenerateOptions) -> List[DiscoveredSource]:
        if options.selected_source_urls:
            return merge_sources([source_from_url(u) for u in options.selected_source_urls if u.strip()])
        custom = [source_from_custom(c) for c in options.custom_sources]
        allowlist = direct_tier(enabled_sources(options.enabled_source_ids))
        self.emit("stage_start", {"stage": "discovery"})
        found = await self.discoverer.discover(topic, allowlist, custom)
        sources = merge_sources(found, custom)
        self.emit("stage_complete", {"stage": "discovery", "sources_count": len(sources)})
        return sources

    async def _authority_guided_sources(
        self, topic: str, options: GenerateOptions
    ) -> Tuple[TopicComposition, List[DiscoveredSource]]:
        self.emit("stage_start", {"stage": "analysis"})
        composition, authorities = await asyncio.gather(
            self.analyzer.analyze(topic),
            self.authority_finder.identify(topic),
        )
        self.emit(
            "stage_complete",
            {
                "stage": "analysis",
                "composition_type": composition.composition_type,
                "pillars": [p.name for p in composition.pillars],
                "authorities": [a.domain for a in authorities.authorities],
            },
        )
        self.emit("stage_start", {"stage": "course_grammar"})
        self.course_grammar = await self.grammar_designer.design(topic, composition)
        self.emit(
            "stage_complete",
            {"stage": "course_grammar", "capstone_type": self.course_grammar.mastery_outcome.capstone_type},
        )
        if options.selected_source_urls:
            return composition, await self._plain_sources(topic, options)

        plain, guided = await asyncio.gather(
            self._plain_sources(topic, options),
            self.discoverer.discover_with_authorities(topic, authorities, composition.pillars),
        )
        return composition, merge_sources(plain, guided)

    async def _fetch_and_extract(
        self, topic: str, discovered: Sequence[DiscoveredSource]
    ) -> Tuple[List[Tuple[DiscoveredSource, List[CurriculumModule]]], List[DiscoveredSource]]:
        """Fetch and segment the top sources concurrently; the semaphore caps in-flight requests."""
        top = list(discovered[: self.settings.max_sources_per_run])
        semaphore = asyncio.Semaphore(self.settings.max_concurrent_requests)
        self.emit("stage_start", {"stage": "extraction", "sources_count": len(top)})

        async def one(source: DiscoveredSource) -> Tuple[DiscoveredSource, List[CurriculumModule]]:
            async with semaphore:
                content = await self.fetcher.fetch_content(source.url, topic)
            fetched = source.model_copy(update={"content": content})
            if not fetched.has_content:
                return fetched.model_copy(update={"module_count": 0}), []
            async with semaphore:
                modules = await self.extractor.extract_modules(fetched)
            return fetched.model_copy(update={"module_count": len(modules)}), modules

        per_source = list(await asyncio.gather(*(one(s) for s in top)))
        fetched_by_url = {s.url: s for s, _ in per_source}
        raw_sources = [fetched_by_url.get(s.url, s) for s in discovered]
        self.emit(
            "stage_complete",
            {"stage": "extraction", "modules_count": sum(len(m) for _, m in per_source)},
        )
        return per_source, raw_sources

    # ----- Tiers 2 and 3 -----

    async def run_platform_tier(self, topic: str, options: GenerateOptions) -> Optional[TierOutcome]:
        platforms = platform_tier(enabled_sources(options.enabled_source_ids))
        return await self.aggregator.aggregate(topic, platforms)

    async def run_generative_tier(self, topic: str) -> TierOutcome:
        return await self.designer.design(topic, self.course_grammar)


def _direct_label(contributing: Sequence[DiscoveredSource], composition: Optional[TopicComposition]) -> str:
    names: List[str] = []
    for s in contributing:
        if s.institution not in names:
            names.append(s.institution)
    if composition is not None:
        return f"Synthesized from {len(contributing)} sources across {len(composition.pillars)} pillars"
    if len(names) == 1:
        return f"Direct syllabus from {names[0]}"
    if names:
        return f"Merged from {len(contributing)} sources: {', '.join(names)}"
    return "Merged from discovered sources"


def _prune_into(result: CurriculumResult, options: GenerateOptions) -> CurriculumResult:
    pruned = prune_curriculum(result.modules, options.constraints)
    result.modules = pruned.modules
    result.pruning_stats = pruned.stats
    return result


async def generate_curriculum(
    topic: str,
    options: Optional[GenerateOptions] = None,
    *,
    llm: LLM,
    cache: Optional[CurriculumCache] = None,
    settings: Optional[PipelineSettings] = None,
    event_callback: Optional[EventCallback] = None,
) -> CurriculumResult:
    """
    Build a curriculum for `topic`. Never returns an empty module list.
    Degraded output is signalled only through `source` (and `tier`).
    """
    options = options or GenerateOptions()
    emit = event_callback or (lambda _t, _d: None)
    bypass_cache = options.force_refresh or bool(options.selected_source_urls)

    if cache is not None and not bypass_cache:
        cached = cache.get(topic)
        if cached is not None:
            logger.info("cache hit topic=%r", topic)
            emit("stage_complete", {"stage": "cache", "hit": True})
            result = CurriculumResult.model_validate(cached)
            result.from_cache = True
            return _prune_into(result, options)

    pipeline = CurriculumPipeline(llm, settings, event_callback)
    outcome, raw_sources = await pipeline.acquire(topic, options)
    result = CurriculumResult(
        topic=topic,
        modules=outcome.modules,
        source=outcome.source,
        source_url=outcome.source_url,
        raw_sources=raw_sources,
        tier=outcome.tier,
        composition_type=outcome.composition_type,
    )

    if cache is not None and outcome.source != FALLBACK_LABEL:
        cache.put(topic, result.to_serializable())

    result = _prune_into(result, options)
    logger.info(
        "curriculum topic=%r tier=%s modules=%s visible=%s",
        topic, result.tier, len(result.modules), result.pruning_stats.final_visible_steps,
    )
    return result
