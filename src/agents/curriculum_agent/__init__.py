"""
Curriculum agent - tiered acquisition of a structured curriculum for a topic.

- Tier 1: discover trusted syllabi, fetch and segment them, merge (or synthesize by pillar)
- Tier 2: aggregate MOOC/OER platform courses in one call
- Tier 3: design a course from general knowledge, else a fixed eight-step template
- Depth/time pruning annotates the result without deleting modules
"""

from .cache import CurriculumCache, InMemoryCurriculumCache
from .pipeline import CurriculumPipeline, generate_curriculum
from .pruning import PruningResult, prune_curriculum
from .schemas import (
    CurriculumModule,
    CurriculumResult,
    GenerateOptions,
    LearningPathConstraints,
    PipelineSettings,
    PruningStats,
)

__all__ = [
    "CurriculumCache",
    "CurriculumModule",
    "CurriculumPipeline",
    "CurriculumResult",
    "GenerateOptions",
    "InMemoryCurriculumCache",
    "LearningPathConstraints",
    "PipelineSettings",
    "PruningResult",
    "PruningStats",
    "generate_curriculum",
    "prune_curriculum",
]
