"""
Course grammar: the backward-design pass that fixes the mastery outcome,
capstone type and per-pillar module intents before any material is selected.
Any failure yields a default grammar built from the pillars.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from pydantic import ValidationError

from agents.core.errors import GenerationError
from agents.core.llm import LLM, build_request
from agents.curriculum_agent import prompts
from agents.curriculum_agent.schemas import (
    CourseGrammar,
    CourseGrammarValidation,
    CurriculumModule,
    KnowledgeDecomposition,
    LessonGrammar,
    MasteryOutcome,
    Metalearning,
    ModuleIntent,
    PipelineSettings,
    TopicComposition,
    TopicPillar,
)
from agents.curriculum_agent.stages.json_extractor import ExtractionFailure, extract_json

logger = logging.getLogger(__name__)

DEFAULT_COGNITIVE_VERBS = ["Apply", "Analyze", "Create"]


def default_module_intents(pillars: Sequence[TopicPillar]) -> List[ModuleIntent]:
    return [
        ModuleIntent(
            pillar_name=p.name,
            learning_intent=f"Develop competence in {p.name}",
            summative_checkpoint=f"Assessment covering {p.name}",
        )
        for p in pillars
    ]


def default_course_grammar(topic: str, pillars: Sequence[TopicPillar], narrative_flow: str) -> CourseGrammar:
    return CourseGrammar(
        metalearning=Metalearning(
            knowledge_decomposition=KnowledgeDecomposition(
                facts=[f"Key terminology in {topic}"],
                concepts=[f"Core principles of {topic}"],
                procedures=[f"Practical application of {topic}"],
            ),
        ),
        mastery_outcome=MasteryOutcome(
            short_term=f"Demonstrate foundational competence in {topic}",
            long_term=f"Apply {topic} knowledge in professional contexts",
            evidence_of_mastery=f"Complete a comprehensive project demonstrating {topic} skills",
            capstone_type="project",
            cognitive_verbs=list(DEFAULT_COGNITIVE_VERBS),
        ),
        module_intents=default_module_intents(pillars),
        lesson_grammar=LessonGrammar(narrative_arc=narrative_flow),
    )


def _fill_missing(
    grammar: CourseGrammar, topic: str, pillars: Sequence[TopicPillar], narrative_flow: str
) -> CourseGrammar:
    mastery = grammar.mastery_outcome
    mastery.short_term = mastery.short_term.strip() or f"Demonstrate foundational competence in {topic}"
    mastery.long_term = mastery.long_term.strip() or f"Apply {topic} knowledge in professional contexts"
    mastery.evidence_of_mastery = mastery.evidence_of_mastery.strip() or f"Complete a capstone project in {topic}"
    mastery.cognitive_verbs = [v.strip() for v in mastery.cognitive_verbs if v.strip()] or ["Apply", "Analyze"]
    if not grammar.module_intents:
        grammar.module_intents = default_module_intents(pillars)
    if not grammar.lesson_grammar.narrative_arc.strip():
        grammar.lesson_grammar.narrative_arc = narrative_flow
    return grammar


def _mentions(phrase: str, text: str) -> bool:
    phrase = phrase.strip().lower()
    return bool(phrase) and phrase in text


def validate_course_grammar(
    modules: Sequence[CurriculumModule], grammar: CourseGrammar
) -> CourseGrammarValidation:
    """
    Score a finished curriculum against its grammar, starting from 100.

    Violations (invalid): no capstone, fewer than half of the pillar intents
    carried by a module, a step on an excluded topic. Suggestions only cost a
    few points.
    """
    violations: List[str] = []
    suggestions: List[str] = []
    score = 100

    if not any(m.is_capstone for m in modules):
        violations.append("Missing capstone/evidence of mastery")
        score -= 20

    content = [m for m in modules if not m.is_capstone]
    intents = grammar.module_intents
    if intents:
        tagged = {(m.pillar or "").strip().lower() for m in content}
        covered = [i for i in intents if i.pillar_name.strip().lower() in tagged]
        coverage = round(100 * len(covered) / len(intents))
        if coverage < 50:
            violations.append(f"Only {coverage}% of pillars are carried by a module")
            score -= 15
        elif coverage < 80:
            suggestions.append("Consider adding modules for the uncovered pillars")
            score -= 5

    for intent in intents:
        for excluded in intent.exclude:
            hits = [m.title for m in content if _mentions(excluded, m.title.lower())]
            if hits:
                violations.append(f"'{hits[0]}' covers excluded topic '{excluded}'")
                score -= 10

    text = " ".join(f"{m.title} {m.description or ''}" for m in content).lower()
    missing = [e for i in intents for e in i.emphasize if not _mentions(e, text)]
    if missing:
        suggestions.append(f"Emphasized topics not covered: {', '.join(missing)}")
        score -= 5

    verbs = grammar.mastery_outcome.cognitive_verbs
    titles = " ".join(m.title for m in modules).lower()
    found = [v for v in verbs if _mentions(v, titles)]
    if len(found) < len(verbs) / 2:
        suggestions.append(f"Consider using more cognitive verbs in module titles: {', '.join(verbs)}")
        score -= 5

    return CourseGrammarValidation(
        valid=not violations,
        score=max(0, score),
        violations=violations,
        suggestions=suggestions,
    )


class CourseGrammarDesigner:
    def __init__(self, llm: LLM, settings: Optional[PipelineSettings] = None):
        self.llm = llm
        self.settings = settings or PipelineSettings()

    async def design(self, topic: str, composition: TopicComposition) -> CourseGrammar:
        pillars, flow = composition.pillars, composition.narrative_flow
        system, user = prompts.course_grammar_prompt(topic, pillars, flow)
        request = build_request(
            self.settings.model, system, user, temperature=0.3, max_tokens=2500, purpose="course_grammar"
        )
        try:
            result = await self.llm.complete(request)
        except GenerationError as e:
            logger.warning("course grammar failed topic=%r: %s", topic, e)
            return default_course_grammar(topic, pillars, flow)

        parsed = extract_json(result.text)
        if isinstance(parsed, ExtractionFailure):
            logger.warning("course grammar unparseable topic=%r: %s", topic, parsed.reason)
            return default_course_grammar(topic, pillars, flow)
        try:
            grammar = CourseGrammar.model_validate(parsed)
        except ValidationError as e:
            logger.warning("course grammar invalid topic=%r: %s", topic, e.error_count())
            return default_course_grammar(topic, pillars, flow)

        grammar = _fill_missing(grammar, topic, pillars, flow)
        logger.info(
            "course grammar topic=%r capstone=%s intents=%s",
            topic, grammar.mastery_outcome.capstone_type, len(grammar.module_intents),
        )
        return grammar
