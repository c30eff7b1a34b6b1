"""
Curriculum pipeline stages. Each stage wraps one kind of generation call and
returns an empty result instead of raising when the call yields nothing usable.
"""

from agents.curriculum_agent.stages.authority_finder import AuthorityFinder, identify_domain_authorities
from agents.curriculum_agent.stages.content_fetcher import ContentFetcher, looks_like_hedging
from agents.curriculum_agent.stages.course_grammar import CourseGrammarDesigner, validate_course_grammar
from agents.curriculum_agent.stages.json_extractor import ExtractionFailure, extract_json
from agents.curriculum_agent.stages.merger import CurriculumMerger, dedupe_modules, normalize_title
from agents.curriculum_agent.stages.module_extractor import ModuleExtractor
from agents.curriculum_agent.stages.source_discoverer import SourceDiscoverer
from agents.curriculum_agent.stages.synthesizer import PillarSynthesizer
from agents.curriculum_agent.stages.tiers import (
    CourseDesigner,
    PlatformAggregator,
    TierOutcome,
    weave_capstone_checkpoints,
)
from agents.curriculum_agent.stages.topic_analyzer import TopicAnalyzer, analyze_topic_composition

__all__ = [
    "AuthorityFinder",
    "ContentFetcher",
    "CourseDesigner",
    "CourseGrammarDesigner",
    "CurriculumMerger",
    "ExtractionFailure",
    "ModuleExtractor",
    "PillarSynthesizer",
    "PlatformAggregator",
    "SourceDiscoverer",
    "TierOutcome",
    "TopicAnalyzer",
    "analyze_topic_composition",
    "dedupe_modules",
    "extract_json",
    "identify_domain_authorities",
    "looks_like_hedging",
    "normalize_title",
    "validate_course_grammar",
    "weave_capstone_checkpoints",
]
