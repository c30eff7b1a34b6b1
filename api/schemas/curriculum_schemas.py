"""
Request/response schemas for the curriculum endpoints. camelCase on the wire.
"""

from typing import List, Optional

from pydantic import Field, field_validator

from agents.curriculum_agent.schemas import (
    CamelModel,
    CurriculumModule,
    GenerateOptions,
    LearningPathConstraints,
    PruningStats,
)


class GenerateCurriculumRequest(CamelModel):
    topic: str = Field(min_length=1, max_length=200)
    options: GenerateOptions = Field(default_factory=GenerateOptions)

    @field_validator("topic")
    @classmethod
    def topic_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("topic must not be blank")
        return value


class PruneRequest(CamelModel):
    modules: List[CurriculumModule] = Field(min_length=1)
    constraints: Optional[LearningPathConstraints] = None


class PruneResponse(CamelModel):
    modules: List[CurriculumModule]
    visible_modules: List[CurriculumModule]
    pruning_stats: PruningStats


class SourceInfo(CamelModel):
    id: str
    name: str
    domain: str
    tier: str
    tier_name: str


class SourcesResponse(CamelModel):
    sources: List[SourceInfo]
