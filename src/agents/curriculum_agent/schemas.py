"""
Pydantic schemas for the curriculum pipeline.

Fields are snake_case in Python and camelCase on the wire (populate_by_name lets
model output such as {"isCapstone": true, "sourceUrl": "..."} parse directly).
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

EXTRACTION_FAILED = "EXTRACTION_FAILED"
FALLBACK_SOURCE_URL = "https://bokcenter.harvard.edu/backward-design"
CAPSTONE_TAG = "Capstone Integration"

Priority = Literal["core", "important", "nice_to_have"]
Depth = Literal["overview", "standard", "detailed"]
SkillLevel = Literal["beginner", "intermediate", "advanced"]
CompositionType = Literal["single", "composite_program", "vocational"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _unique(values: List[str]) -> List[str]:
    seen: set[str] = set()
    out: List[str] = []
    for v in values:
        if v and v not in seen:
            seen.add(v)
            out.append(v)
    return out


class CurriculumModule(CamelModel):
    """One learning step. Display form is "Module <n> - Step <m>: <topic>"."""
    title: str
    tag: str = "Core Concepts"
    source: str = ""
    source_urls: List[str] = Field(default_factory=list, description="Ordered set of covering sources")
    description: Optional[str] = None
    is_capstone: bool = False
    pillar: Optional[str] = None
    # Attached by the pruning engine.
    estimated_hours: Optional[float] = None
    priority: Optional[Priority] = None
    is_hidden_for_depth: bool = False
    is_hidden_for_time: bool = False

    @field_validator("source_urls", mode="before")
    @classmethod
    def dedupe_urls(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        if isinstance(value, list):
            return _unique([v.strip() for v in value if isinstance(v, str) and v.strip()])
        return value

    @classmethod
    def from_payload(
        cls,
        raw: Any,
        *,
        default_source: str = "",
        default_url: Optional[str] = None,
    ) -> Optional["CurriculumModule"]:
        """Build from one model-emitted dict; None when there is no usable title."""
        if not isinstance(raw, dict):
            return None
        title = raw.get("title")
        if not isinstance(title, str) or not title.strip():
            return None
        urls: List[str] = []
        for key in ("sourceUrls", "source_urls"):
            value = raw.get(key)
            if isinstance(value, list):
                urls.extend(u for u in value if isinstance(u, str))
        for key in ("sourceUrl", "source_url"):
            value = raw.get(key)
            if isinstance(value, str):
                urls.append(value)
        if not urls and default_url:
            urls = [default_url]
        tag = raw.get("tag")
        description = raw.get("description")
        pillar = raw.get("pillar")
        source = raw.get("source")
        return cls(
            title=title.strip(),
            tag=tag.strip() if isinstance(tag, str) and tag.strip() else "Core Concepts",
            source=source.strip() if isinstance(source, str) and source.strip() else default_source,
            source_urls=urls,
            description=description.strip() if isinstance(description, str) and description.strip() else None,
            is_capstone=bool(raw.get("isCapstone") or raw.get("is_capstone")),
            pillar=pillar.strip() if isinstance(pillar, str) and pillar.strip() else None,
        )


def modules_from_payload(
    raw_modules: Any,
    *,
    default_source: str = "",
    default_url: Optional[str] = None,
) -> List[CurriculumModule]:
    if not isinstance(raw_modules, list):
        return []
    out: List[CurriculumModule] = []
    for raw in raw_modules:
        module = CurriculumModule.from_payload(raw, default_source=default_source, default_url=default_url)
        if module is not None:
            out.append(module)
    return out


class DiscoveredSource(CamelModel):
    """
    Candidate origin for curriculum content; url is the identity key.
    content: None = fetch not attempted, EXTRACTION_FAILED = attempted without usable text.
    """
    institution: str
    course_name: str = ""
    url: str
    source_type: str = Field(default="University OpenCourseWare", alias="type")
    content: Optional[str] = None
    module_count: Optional[int] = None

    @property
    def has_content(self) -> bool:
        return bool(self.content) and self.content != EXTRACTION_FAILED


class CustomSource(CamelModel):
    name: str
    url: str
    source_type: str = Field(default="Custom Source", alias="type")


class LearningPathConstraints(CamelModel):
    depth: Depth = "standard"
    hours_per_week: float = Field(default=5, gt=0)
    goal_date: Optional[date] = None
    skill_level: SkillLevel = "beginner"


FeasibilityStatus = Literal["valid", "warning", "impossible"]


class FeasibilityReport(CamelModel):
    """Whether hours per week over the weeks left can cover even an overview."""
    status: FeasibilityStatus
    message: str
    suggestions: List[str] = Field(default_factory=list)
    minimum_hours_needed: Optional[float] = None
    minimum_weeks_needed: Optional[int] = None
    minimum_hours_per_week: Optional[int] = None


class PruningStats(CamelModel):
    full_curriculum_steps: int
    full_curriculum_hours: float
    depth_label: Depth
    steps_after_depth_filter: int
    hours_after_depth_filter: float
    steps_hidden_by_depth: int
    has_time_constraint: bool
    steps_hidden_by_time: int
    budget_hours: Optional[float] = None
    weeks_available: Optional[float] = None
    final_visible_steps: int
    final_estimated_hours: float
    hours_saved: float
    hidden_by_depth_titles: List[str] = Field(default_factory=list)
    hidden_by_time_titles: List[str] = Field(default_factory=list)
    # Set only when a goal date is given.
    recommended_depth: Optional[Depth] = None
    recommended_coverage: Optional[int] = None
    feasibility: Optional[FeasibilityReport] = None


class TopicPillar(CamelModel):
    name: str
    search_terms: List[str] = Field(default_factory=list)
    recommended_sources: List[str] = Field(default_factory=list)
    priority: Priority = "important"

    @field_validator("priority", mode="before")
    @classmethod
    def normalize_priority(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower().replace("-", "_")
            if value not in ("core", "important", "nice_to_have"):
                return "important"
        return value


class TopicComposition(CamelModel):
    composition_type: CompositionType = "single"
    constituent_disciplines: List[str] = Field(default_factory=list)
    pillars: List[TopicPillar] = Field(default_factory=list)
    narrative_flow: str = "Foundations → Core Concepts → Advanced Topics → Application"
    recommended_sources: List[str] = Field(default_factory=list)
    vocational_first: bool = False


class DomainAuthority(CamelModel):
    name: str
    domain: str
    authority_type: str = "academic"
    authority_reason: str = ""
    focus_areas: List[str] = Field(default_factory=list)


class AuthorityDiscovery(CamelModel):
    authorities: List[DomainAuthority] = Field(default_factory=list)
    search_strategy: str = ""


CapstoneType = Literal["essay", "project", "analysis", "presentation", "portfolio", "practical_demonstration"]


class KnowledgeDecomposition(CamelModel):
    facts: List[str] = Field(default_factory=list)
    concepts: List[str] = Field(default_factory=list)
    procedures: List[str] = Field(default_factory=list)


class Metalearning(CamelModel):
    learner_motivation: Literal["intrinsic", "extrinsic", "mixed"] = "mixed"
    knowledge_decomposition: KnowledgeDecomposition = Field(default_factory=KnowledgeDecomposition)
    academic_benchmarks: List[str] = Field(default_factory=list)

    @field_validator("learner_motivation", mode="before")
    @classmethod
    def normalize_motivation(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().lower() in ("intrinsic", "extrinsic", "mixed"):
            return value.strip().lower()
        return "mixed"


class MasteryOutcome(CamelModel):
    short_term: str = ""
    long_term: str = ""
    evidence_of_mastery: str = ""
    capstone_type: CapstoneType = "project"
    cognitive_verbs: List[str] = Field(default_factory=list)

    @field_validator("capstone_type", mode="before")
    @classmethod
    def normalize_capstone_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower().replace(" ", "_")
            if value in get_args(CapstoneType):
                return value
        return "project"


class ModuleIntent(CamelModel):
    pillar_name: str
    learning_intent: str = ""
    summative_checkpoint: str = ""
    emphasize: List[str] = Field(default_factory=list)
    exclude: List[str] = Field(default_factory=list)


class LessonGrammar(CamelModel):
    narrative_arc: str = ""
    bottlenecks: List[str] = Field(default_factory=list)
    drill_opportunities: List[str] = Field(default_factory=list)
    direct_practice_contexts: List[str] = Field(default_factory=list)


class CourseGrammar(CamelModel):
    """Backward-design architecture of a course, decided before any content is selected."""
    metalearning: Metalearning = Field(default_factory=Metalearning)
    mastery_outcome: MasteryOutcome = Field(default_factory=MasteryOutcome)
    module_intents: List[ModuleIntent] = Field(default_factory=list)
    lesson_grammar: LessonGrammar = Field(default_factory=LessonGrammar)


class CourseGrammarValidation(CamelModel):
    valid: bool
    score: int = Field(ge=0, le=100)
    violations: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)


class GenerateOptions(CamelModel):
    selected_source_urls: Optional[List[str]] = None
    custom_sources: List[CustomSource] = Field(default_factory=list)
    enabled_source_ids: Optional[List[str]] = None
    force_refresh: bool = False
    constraints: Optional[LearningPathConstraints] = None
    use_authority_guided_discovery: bool = False


class CurriculumResult(CamelModel):
    topic: str
    modules: List[CurriculumModule]
    source: str
    source_url: str = ""
    raw_sources: List[DiscoveredSource] = Field(default_factory=list)
    pruning_stats: Optional[PruningStats] = None
    from_cache: bool = False
    tier: int = 1
    composition_type: Optional[CompositionType] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_serializable(self) -> Dict[str, Any]:
        """JSON-ready camelCase dict for the cache and the API."""
        return self.model_dump(mode="json", by_alias=True)


class PipelineSettings(BaseModel):
    """Pipeline tuning; built from api.config.Settings, never read from the environment here."""
    model: str = "sonar-pro"
    min_modules_per_tier: int = Field(default=4, ge=1)
    max_sources_per_run: int = Field(default=4, ge=1)
    max_concurrent_requests: int = Field(default=3, ge=1)
    coverage_module_window: int = Field(default=10, ge=1)
    discovery_max_tokens: int = 3000
    fetch_max_tokens: int = 4000
    extract_max_tokens: int = 3000
    merge_max_tokens: int = 5000
