"""Unit tests for the course grammar design pass and its curriculum check."""
import pytest

from agents.core.errors import RateLimitExceeded
from agents.curriculum_agent.schemas import (
    CourseGrammar,
    CurriculumModule,
    MasteryOutcome,
    ModuleIntent,
    TopicComposition,
    TopicPillar,
)
from agents.curriculum_agent.stages.course_grammar import (
    CourseGrammarDesigner,
    default_course_grammar,
    validate_course_grammar,
)

PILLARS = [TopicPillar(name="Research", priority="core"), TopicPillar(name="Design")]
COMPOSITION = TopicComposition(pillars=PILLARS, narrative_flow="Observe → Design → Ship")


@pytest.mark.unit
class TestCourseGrammarDesigner:
    @pytest.mark.asyncio
    async def test_model_grammar_parsed_and_completed(self, scripted_llm):
        llm = scripted_llm(
            {
                "course_grammar": {
                    "masteryOutcome": {
                        "shortTerm": "Run a usability study end to end",
                        "evidenceOfMastery": "Publish a usability report",
                        "capstoneType": "Analysis",
                        "cognitiveVerbs": ["Evaluate", " "],
                    },
                    "moduleIntents": [
                        {"pillarName": "Research", "emphasize": ["interviews"], "exclude": ["eye tracking"]}
                    ],
                    "metalearning": {"learnerMotivation": "curious"},
                }
            }
        )
        grammar = await CourseGrammarDesigner(llm).design("UX Research", COMPOSITION)

        mastery = grammar.mastery_outcome
        assert mastery.short_term == "Run a usability study end to end"
        assert mastery.long_term == "Apply UX Research knowledge in professional contexts"
        assert mastery.capstone_type == "analysis"
        assert mastery.cognitive_verbs == ["Evaluate"]
        assert [i.pillar_name for i in grammar.module_intents] == ["Research"]
        assert grammar.metalearning.learner_motivation == "mixed"
        assert grammar.lesson_grammar.narrative_arc == "Observe → Design → Ship"
        assert "Research (core)" in llm.calls[0].messages[-1].content

    @pytest.mark.asyncio
    async def test_missing_intents_come_from_pillars(self, scripted_llm):
        llm = scripted_llm({"course_grammar": {"masteryOutcome": {"capstoneType": "mural"}}})
        grammar = await CourseGrammarDesigner(llm).design("UX Research", COMPOSITION)
        assert grammar.mastery_outcome.capstone_type == "project"
        assert [i.pillar_name for i in grammar.module_intents] == ["Research", "Design"]
        assert grammar.module_intents[1].learning_intent == "Develop competence in Design"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "reply",
        [RateLimitExceeded(3), "no json here", {"moduleIntents": [{"learningIntent": "no pillar name"}]}],
    )
    async def test_failures_yield_default(self, scripted_llm, reply):
        llm = scripted_llm({"course_grammar": reply})
        grammar = await CourseGrammarDesigner(llm).design("UX Research", COMPOSITION)
        assert grammar == default_course_grammar("UX Research", PILLARS, COMPOSITION.narrative_flow)

    def test_default_grammar(self):
        grammar = default_course_grammar("Statistics", PILLARS, "A → B")
        assert grammar.mastery_outcome.evidence_of_mastery == (
            "Complete a comprehensive project demonstrating Statistics skills"
        )
        assert grammar.mastery_outcome.cognitive_verbs == ["Apply", "Analyze", "Create"]
        assert grammar.metalearning.knowledge_decomposition.facts == ["Key terminology in Statistics"]
        assert grammar.lesson_grammar.narrative_arc == "A → B"

    def test_wire_names_are_camel_case(self):
        dumped = default_course_grammar("Statistics", PILLARS, "A → B").model_dump(by_alias=True)
        assert dumped["masteryOutcome"]["capstoneType"] == "project"
        assert dumped["moduleIntents"][0]["pillarName"] == "Research"


def _grammar(**mastery):
    return CourseGrammar(
        mastery_outcome=MasteryOutcome(cognitive_verbs=["Analyze", "Design"], **mastery),
        module_intents=[
            ModuleIntent(pillar_name="Research", emphasize=["interviews"], exclude=["eye tracking"]),
            ModuleIntent(pillar_name="Design"),
        ],
    )


@pytest.mark.unit
class TestValidateCourseGrammar:
    def test_aligned_curriculum_is_valid(self):
        modules = [
            CurriculumModule(title="Analyze user interviews", pillar="Research"),
            CurriculumModule(title="Design a prototype", pillar="design"),
            CurriculumModule(title="Final Capstone", is_capstone=True),
        ]
        result = validate_course_grammar(modules, _grammar())
        assert result.valid
        assert result.score == 100
        assert result.violations == [] and result.suggestions == []

    def test_missing_capstone_and_pillars_are_violations(self):
        modules = [CurriculumModule(title="Intro to interviews")]
        result = validate_course_grammar(modules, _grammar())
        assert not result.valid
        assert result.violations == [
            "Missing capstone/evidence of mastery",
            "Only 0% of pillars are carried by a module",
        ]
        # -20 capstone, -15 pillars, -5 verbs
        assert result.score == 60

    def test_excluded_topic_is_a_violation(self):
        modules = [
            CurriculumModule(title="Analyze interviews", pillar="Research"),
            CurriculumModule(title="Design with Eye Tracking", pillar="Design"),
            CurriculumModule(title="Project", is_capstone=True),
        ]
        result = validate_course_grammar(modules, _grammar())
        assert result.violations == ["'Design with Eye Tracking' covers excluded topic 'eye tracking'"]
        assert result.score == 90

    def test_partial_pillars_and_missing_emphasis_are_suggestions(self):
        intents = [ModuleIntent(pillar_name=n) for n in ("A", "B", "C")]
        intents[0].emphasize = ["regression"]
        grammar = CourseGrammar(mastery_outcome=MasteryOutcome(cognitive_verbs=[]), module_intents=intents)
        modules = [
            CurriculumModule(title="One", pillar="A"),
            CurriculumModule(title="Two", pillar="B"),
            CurriculumModule(title="Project", is_capstone=True),
        ]
        result = validate_course_grammar(modules, grammar)
        assert result.valid
        assert result.suggestions == [
            "Consider adding modules for the uncovered pillars",
            "Emphasized topics not covered: regression",
        ]
        assert result.score == 90

    def test_score_never_negative(self):
        intents = [ModuleIntent(pillar_name="A", exclude=[f"topic {i}" for i in range(12)])]
        grammar = CourseGrammar(module_intents=intents)
        modules = [CurriculumModule(title=" ".join(f"topic {i}" for i in range(12)), pillar="A")]
        assert validate_course_grammar(modules, grammar).score == 0
