"""Unit tests for title normalization, dedup, coverage and the merge stage."""
import pytest

from agents.core.errors import RateLimitExceeded
from agents.curriculum_agent.schemas import (
    CAPSTONE_TAG,
    CurriculumModule,
    DiscoveredSource,
    TopicComposition,
    TopicPillar,
)
from agents.curriculum_agent.stages.merger import (
    MILESTONE_SOURCE,
    CurriculumMerger,
    complete_coverage,
    dedupe_modules,
    ensure_final_capstone,
    normalize_title,
)
from agents.curriculum_agent.stages.synthesizer import PillarSynthesizer

MIT = "https://ocw.mit.edu/courses/18-05"
HARVARD = "https://pll.harvard.edu/course/stat110"
STANFORD = "https://online.stanford.edu/courses/stats60"


def _module(title, *urls, **kw):
    return CurriculumModule(title=title, source_urls=list(urls), **kw)


def _source(url, institution):
    return DiscoveredSource(institution=institution, course_name="Statistics", url=url)


@pytest.mark.unit
class TestNormalizeTitle:
    @pytest.mark.parametrize(
        "title",
        [
            "Module 1 - Step 2: Probability Basics",
            "module 3 – step 1:  Probability Basics ",
            "Step 4: Probability basics",
            "Week 2: PROBABILITY BASICS",
            "Probability Basics",
        ],
    )
    def test_prefixes_and_case_removed(self, title):
        assert normalize_title(title) == "probability basics"

    def test_inner_text_untouched(self):
        assert normalize_title("Bayes: Step by Step") == "bayes: step by step"


@pytest.mark.unit
class TestDedupeModules:
    def test_first_slot_wins_and_urls_union(self):
        modules = [
            _module("Week 1: Probability", MIT),
            _module("Regression", MIT),
            _module("Step 3: probability", HARVARD),
        ]
        result = dedupe_modules(modules)
        assert [m.title for m in result] == ["Week 1: Probability", "Regression"]
        assert result[0].source_urls == [MIT, HARVARD]

    def test_idempotent(self):
        modules = [_module("A", MIT), _module("a", HARVARD), _module("B", STANFORD)]
        once = dedupe_modules(modules)
        twice = dedupe_modules(once)
        assert [(m.title, m.source_urls) for m in once] == [(m.title, m.source_urls) for m in twice]

    def test_input_not_mutated(self):
        first = _module("A", MIT)
        dedupe_modules([first, _module("a", HARVARD)])
        assert first.source_urls == [MIT]

    def test_semantic_duplicates_stay_separate(self):
        result = dedupe_modules([_module("Intro to Probability"), _module("Probability Introduction")])
        assert len(result) == 2


@pytest.mark.unit
class TestCompleteCoverage:
    def test_missing_urls_distributed_round_robin(self):
        modules = [_module("A", MIT), _module("B", MIT), _module("Capstone", is_capstone=True)]
        complete_coverage(modules, [MIT, HARVARD, STANFORD, "https://www.edx.org/x"])
        assert modules[0].source_urls == [MIT, HARVARD, "https://www.edx.org/x"]
        assert modules[1].source_urls == [MIT, STANFORD]
        assert modules[2].source_urls == []

    def test_trailing_slash_counts_as_attributed(self):
        modules = [_module("A", MIT + "/")]
        complete_coverage(modules, [MIT])
        assert modules[0].source_urls == [MIT + "/"]

    def test_window_limits_targets(self):
        modules = [_module(f"M{i}") for i in range(4)]
        complete_coverage(modules, [MIT, HARVARD, STANFORD], window=2)
        assert modules[0].source_urls == [MIT, STANFORD]
        assert modules[1].source_urls == [HARVARD]
        assert modules[2].source_urls == [] and modules[3].source_urls == []


@pytest.mark.unit
class TestEnsureFinalCapstone:
    def test_appends_when_missing(self):
        result = ensure_final_capstone([_module("A", MIT)], "Statistics")
        assert result[-1].is_capstone
        assert result[-1].title == "Final Capstone: Statistics Project Presentation"
        assert result[-1].tag == CAPSTONE_TAG
        assert result[-1].source == MILESTONE_SOURCE
        assert result[-1].source_urls == []

    def test_existing_capstone_kept(self):
        modules = [_module("A", MIT), _module("Project", is_capstone=True)]
        assert ensure_final_capstone(modules, "Statistics") == modules


@pytest.mark.unit
class TestCurriculumMerger:
    @pytest.mark.asyncio
    async def test_model_merge_is_deduped_and_covers_every_source(self, scripted_llm):
        llm = scripted_llm(
            {
                "merge": {
                    "modules": [
                        {"title": "Probability", "sourceUrls": [MIT]},
                        {"title": "Step 2: probability", "sourceUrls": [HARVARD]},
                        {"title": "Inference", "sourceUrls": [MIT]},
                    ]
                }
            }
        )
        per_source = [
            (_source(MIT, "MIT"), [_module("Probability", MIT)]),
            (_source(HARVARD, "Harvard"), [_module("Probability", HARVARD)]),
        ]
        discovered = [s for s, _ in per_source] + [_source(STANFORD, "Stanford")]

        result = await CurriculumMerger(llm).merge("Statistics", per_source, discovered)

        assert [m.title for m in result[:2]] == ["Probability", "Inference"]
        assert result[0].source_urls[:2] == [MIT, HARVARD]
        assert result[0].source == "MIT"
        assert result[-1].is_capstone
        attributed = {u for m in result for u in m.source_urls}
        assert {MIT, HARVARD, STANFORD} <= attributed

    @pytest.mark.asyncio
    async def test_steps_returned_without_urls_keep_every_covering_source(self, scripted_llm):
        titles = ["Descriptive Statistics", "Probability", "Sampling", "Estimation", "Testing"]
        reply = [{"title": t} for t in titles]
        reply[0]["sourceUrls"] = [MIT]
        reply[1]["sourceUrls"] = [HARVARD]
        llm = scripted_llm({"merge": {"modules": reply}})
        per_source = [
            (_source(MIT, "MIT"), [_module(t, MIT) for t in titles]),
            (_source(HARVARD, "Harvard"), [_module(f"Week {i + 1}: {t}", HARVARD) for i, t in enumerate(titles)]),
        ]

        result = await CurriculumMerger(llm).merge("Statistics", per_source)

        content = [m for m in result if not m.is_capstone]
        assert [m.title for m in content] == titles
        assert content[0].source_urls == [MIT, HARVARD]
        assert content[1].source_urls == [HARVARD, MIT]
        for m in content[2:]:
            assert m.source_urls == [MIT, HARVARD]
            assert m.source == "MIT"

    @pytest.mark.asyncio
    async def test_failed_merge_falls_back_to_concatenation(self, scripted_llm):
        llm = scripted_llm({"merge": RateLimitExceeded(3)})
        per_source = [
            (_source(MIT, "MIT"), [_module("A", MIT), _module("B", MIT)]),
            (_source(HARVARD, "Harvard"), [_module("C", HARVARD)]),
        ]
        result = await CurriculumMerger(llm).merge("Statistics", per_source)
        assert [m.title for m in result[:-1]] == ["A", "B", "C"]
        assert result[-1].is_capstone

    @pytest.mark.asyncio
    async def test_unparseable_merge_falls_back_to_concatenation(self, scripted_llm):
        llm = scripted_llm({"merge": "I merged them nicely but forgot the JSON."})
        per_source = [(_source(MIT, "MIT"), [_module("A", MIT)])]
        result = await CurriculumMerger(llm).merge("Statistics", per_source)
        assert [m.title for m in result] == ["A", "Final Capstone: Statistics Project Presentation"]

    @pytest.mark.asyncio
    async def test_nothing_to_merge(self, scripted_llm):
        llm = scripted_llm()
        result = await CurriculumMerger(llm).merge("Statistics", [(_source(MIT, "MIT"), [])])
        assert result == []
        assert llm.calls == []


@pytest.mark.unit
class TestPillarSynthesizer:
    @pytest.mark.asyncio
    async def test_selected_steps_regain_source_urls(self, scripted_llm):
        llm = scripted_llm(
            {
                "synthesize": {
                    "modules": [
                        {"title": "Probability", "pillar": "Foundations"},
                        {"title": "Study Design", "pillar": "Practice"},
                    ]
                }
            }
        )
        per_source = [
            (_source(MIT, "MIT"), [_module("Probability", MIT)]),
            (_source(HARVARD, "Harvard"), [_module("Step 3: Probability", HARVARD)]),
        ]
        composition = TopicComposition(pillars=[TopicPillar(name="Foundations"), TopicPillar(name="Practice")])

        result = await PillarSynthesizer(llm).synthesize("Statistics", composition, per_source)

        assert result[0].source_urls == [MIT, HARVARD]
        assert result[0].source == "MIT"
        assert result[1].source_urls == []
        assert result[-1].is_capstone
