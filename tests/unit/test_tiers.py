"""Unit tests for platform aggregation, course design and checkpoint weaving."""
import pytest

from agents.core.errors import RateLimitExceeded
from agents.curriculum_agent.schemas import FALLBACK_SOURCE_URL, CurriculumModule
from agents.curriculum_agent.sources import enabled_sources, platform_tier
from agents.curriculum_agent.stages.tiers import (
    FALLBACK_LABEL,
    TIER3_LABEL,
    CourseDesigner,
    PlatformAggregator,
    fallback_template,
    weave_capstone_checkpoints,
)


@pytest.mark.unit
class TestWeaveCheckpoints:
    def test_checkpoints_at_thirds(self):
        modules = [CurriculumModule(title=f"Step {i}") for i in range(9)]
        woven = weave_capstone_checkpoints(modules, "Statistics")

        assert len(woven) == 12
        assert woven[3].title == "Capstone Checkpoint: Project Planning for Statistics"
        assert woven[7].title == "Capstone Checkpoint: Draft & Peer Review"
        assert woven[-1].title == "Final Capstone: Statistics Project Presentation"
        assert sum(m.is_capstone for m in woven) == 3

    def test_merged_curriculum_only_gets_final(self):
        modules = [CurriculumModule(title=f"Step {i}") for i in range(9)]
        modules.append(CurriculumModule(title="Project", is_capstone=True))
        woven = weave_capstone_checkpoints(modules, "Statistics", checkpoints=False)
        assert len(woven) == 10
        assert woven[-1].title == "Project"

    def test_model_capstone_still_gets_checkpoints(self):
        modules = [CurriculumModule(title=f"Step {i}") for i in range(8)]
        modules.append(CurriculumModule(title="Build a dashboard", is_capstone=True))
        woven = weave_capstone_checkpoints(modules, "Statistics")

        assert [m.title for m in woven if m.is_capstone] == [
            "Capstone Checkpoint: Project Planning for Statistics",
            "Capstone Checkpoint: Draft & Peer Review",
            "Build a dashboard",
        ]
        assert woven[1].title == "Step 1" and woven[2].is_capstone
        assert woven[5].title == "Step 4" and woven[6].is_capstone
        assert len(woven) == 11

    def test_capstone_mid_list_is_not_counted(self):
        modules = [CurriculumModule(title=f"Step {i}") for i in range(6)]
        modules.insert(1, CurriculumModule(title="Early project", is_capstone=True))
        woven = weave_capstone_checkpoints(modules, "Statistics")

        assert [m.title for m in woven] == [
            "Step 0",
            "Early project",
            "Step 1",
            "Capstone Checkpoint: Project Planning for Statistics",
            "Step 2",
            "Step 3",
            "Capstone Checkpoint: Draft & Peer Review",
            "Step 4",
            "Step 5",
            "Final Capstone: Statistics Project Presentation",
        ]

    def test_fallback_template_woven(self):
        woven = weave_capstone_checkpoints(fallback_template("Statistics"), "Statistics")
        assert len(woven) == 11
        content = [m.title for m in woven if not m.is_capstone]
        assert content == [m.title for m in fallback_template("Statistics")]


@pytest.mark.unit
class TestFallbackTemplate:
    def test_eight_generic_steps(self):
        modules = fallback_template("Statistics")
        assert len(modules) == 8
        assert modules[0].title == "Module 1 - Step 1: Introduction to Statistics"
        assert modules[-1].title == "Module 3 - Step 3: Synthesis & Future Directions"
        assert [m.tag for m in modules].count("Application") == 3
        assert all(m.source_urls == [FALLBACK_SOURCE_URL] for m in modules)


@pytest.mark.unit
class TestPlatformAggregator:
    @pytest.mark.asyncio
    async def test_parses_modules_and_aggregated_urls(self, scripted_llm):
        llm = scripted_llm(
            {
                "tier2": {
                    "modules": [
                        {"title": "Descriptive Statistics", "sourceUrl": "https://www.coursera.org/learn/stats"},
                        {"title": "Probability", "sourceUrls": ["https://www.edx.org/course/prob"]},
                    ],
                    "aggregatedFrom": ["https://www.coursera.org/learn/stats", "https://www.edx.org/course/prob"],
                }
            }
        )
        platforms = platform_tier(enabled_sources())
        outcome = await PlatformAggregator(llm).aggregate("Statistics", platforms)

        assert outcome.tier == 2
        assert outcome.source == "Aggregated from 2 online courses"
        assert outcome.source_url == "https://www.coursera.org/learn/stats"
        assert [s.institution for s in outcome.discovered] == ["Coursera", "edX"]
        assert outcome.modules[0].source_urls == ["https://www.coursera.org/learn/stats"]
        assert "coursera.org" in llm.calls[0].extra_body["search_domain_filter"]

    @pytest.mark.asyncio
    async def test_non_list_aggregated_from_is_ignored(self, scripted_llm):
        llm = scripted_llm({"tier2": {"modules": [{"title": "A", "sourceUrl": "https://x.org"}], "aggregatedFrom": "x"}})
        outcome = await PlatformAggregator(llm).aggregate("Statistics", [])
        assert outcome.source == "Aggregated from multiple online courses"
        assert outcome.source_url == "https://x.org"
        assert outcome.discovered == []

    @pytest.mark.asyncio
    async def test_failure_is_none(self, scripted_llm):
        llm = scripted_llm({"tier2": RateLimitExceeded(3)})
        assert await PlatformAggregator(llm).aggregate("Statistics", []) is None


@pytest.mark.unit
class TestCourseDesigner:
    @pytest.mark.asyncio
    async def test_model_design(self, scripted_llm):
        llm = scripted_llm({"tier3": {"modules": [{"title": "Why Statistics?"}, {"title": "Sampling"}]}})
        outcome = await CourseDesigner(llm).design("Statistics")
        assert outcome.source == TIER3_LABEL
        assert outcome.modules[0].source_urls == [FALLBACK_SOURCE_URL]

    @pytest.mark.asyncio
    async def test_failure_uses_template(self, scripted_llm):
        llm = scripted_llm()
        outcome = await CourseDesigner(llm).design("Statistics")
        assert outcome.source == FALLBACK_LABEL
        assert len(outcome.modules) == 8
