"""Unit tests for fetch, extraction, topic analysis and authority identification."""
import pytest

from agents.core.errors import RateLimitExceeded, UpstreamShapeError
from agents.curriculum_agent.schemas import EXTRACTION_FAILED, DiscoveredSource
from agents.curriculum_agent.stages import (
    AuthorityFinder,
    ContentFetcher,
    ModuleExtractor,
    TopicAnalyzer,
    looks_like_hedging,
)

MIT = "https://ocw.mit.edu/courses/18-05"


@pytest.mark.unit
class TestContentFetcher:
    @pytest.mark.asyncio
    async def test_returns_text(self, scripted_llm):
        llm = scripted_llm({"fetch": "  Week 1: Probability\nWeek 2: Random Variables  "})
        text = await ContentFetcher(llm).fetch_content(MIT, "Statistics")
        assert text == "Week 1: Probability\nWeek 2: Random Variables"
        assert MIT in llm.calls[0].messages[-1].content

    @pytest.mark.asyncio
    async def test_hedging_is_extraction_failure(self, scripted_llm):
        llm = scripted_llm({"fetch": "I'm sorry, but I cannot access that page."})
        assert await ContentFetcher(llm).fetch_content(MIT, "Statistics") == EXTRACTION_FAILED

    @pytest.mark.asyncio
    async def test_failed_marker_serializes_as_bare_literal(self, scripted_llm):
        llm = scripted_llm({"fetch": "Unfortunately, I don't have access to that syllabus."})
        content = await ContentFetcher(llm).fetch_content(MIT, "Statistics")
        source = DiscoveredSource(institution="MIT OCW", url=MIT, content=content)

        assert source.model_dump(mode="json", by_alias=True)["content"] == "EXTRACTION_FAILED"
        assert not source.has_content

    @pytest.mark.asyncio
    async def test_generation_error_is_empty(self, scripted_llm):
        llm = scripted_llm({"fetch": UpstreamShapeError("empty")})
        assert await ContentFetcher(llm).fetch_content(MIT, "Statistics") == ""

    @pytest.mark.asyncio
    async def test_predicate_is_injectable(self, scripted_llm):
        llm = scripted_llm({"fetch": "I cannot stress enough: Week 1 is Probability."})
        fetcher = ContentFetcher(llm, is_hedging=lambda text: False)
        assert await fetcher.fetch_content(MIT, "Statistics") == "I cannot stress enough: Week 1 is Probability."

    def test_hedging_match_is_case_insensitive(self):
        assert looks_like_hedging("As an AI language model I can't browse.")
        assert not looks_like_hedging("Lecture 1: Descriptive statistics")


@pytest.mark.unit
class TestModuleExtractor:
    @pytest.mark.asyncio
    async def test_modules_attributed_to_source(self, scripted_llm):
        llm = scripted_llm(
            {
                "extract": {
                    "modules": [
                        {"title": "Probability", "tag": "Foundations"},
                        {"title": "Inference", "sourceUrls": ["https://other.example/x"]},
                        {"title": "  "},
                    ]
                }
            }
        )
        source = DiscoveredSource(institution="MIT OCW", url=MIT, content="Week 1 ... Week 2 ...")
        modules = await ModuleExtractor(llm).extract_modules(source)

        assert [m.title for m in modules] == ["Probability", "Inference"]
        assert all(m.source == "MIT OCW" for m in modules)
        assert modules[0].source_urls == [MIT]
        assert modules[1].source_urls == [MIT, "https://other.example/x"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", [None, "", EXTRACTION_FAILED])
    async def test_no_usable_content_skips_call(self, scripted_llm, content):
        llm = scripted_llm()
        source = DiscoveredSource(institution="MIT OCW", url=MIT, content=content)
        assert await ModuleExtractor(llm).extract_modules(source) == []
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_unparseable_output_is_empty(self, scripted_llm):
        llm = scripted_llm({"extract": "Sure! The course covers probability."})
        source = DiscoveredSource(institution="MIT OCW", url=MIT, content="syllabus")
        assert await ModuleExtractor(llm).extract_modules(source) == []


@pytest.mark.unit
class TestTopicAnalyzer:
    @pytest.mark.asyncio
    async def test_parses_composition(self, scripted_llm):
        llm = scripted_llm(
            {
                "analyze_topic": {
                    "compositionType": "composite_program",
                    "constituentDisciplines": ["Psychology", "Design"],
                    "pillars": [
                        {"name": "Research", "searchTerms": ["ux research"], "priority": "Core"},
                        {"name": "Visual", "priority": "nice-to-have"},
                        {"name": "Odd", "priority": "whenever"},
                    ],
                    "narrativeFlow": "Research → Design",
                }
            }
        )
        composition = await TopicAnalyzer(llm).analyze("UX Design")
        assert composition.composition_type == "composite_program"
        assert [p.priority for p in composition.pillars] == ["core", "nice_to_have", "important"]
        assert composition.narrative_flow == "Research → Design"

    @pytest.mark.asyncio
    async def test_failure_yields_four_default_pillars(self, scripted_llm):
        llm = scripted_llm({"analyze_topic": RateLimitExceeded(3)})
        composition = await TopicAnalyzer(llm).analyze("Statistics")
        assert composition.composition_type == "single"
        assert [p.name for p in composition.pillars] == [
            "Foundations", "Core Concepts", "Practical Application", "Advanced Topics",
        ]

    @pytest.mark.asyncio
    async def test_invalid_type_yields_defaults(self, scripted_llm):
        llm = scripted_llm({"analyze_topic": {"compositionType": "galaxy"}})
        composition = await TopicAnalyzer(llm).analyze("Statistics")
        assert len(composition.pillars) == 4


@pytest.mark.unit
class TestAuthorityFinder:
    @pytest.mark.asyncio
    async def test_parses_authorities(self, scripted_llm):
        llm = scripted_llm(
            {
                "authorities": {
                    "authorities": [
                        {"name": "NN/g", "domain": "nngroup.com", "authorityType": "industry_standard"},
                        {"name": "Blank", "domain": "  "},
                    ],
                    "searchStrategy": "start with NN/g",
                }
            }
        )
        found = await AuthorityFinder(llm).identify("UX Design")
        assert [a.domain for a in found.authorities] == ["nngroup.com"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "topic, expected",
        [
            ("UX Design", "nngroup.com"),
            ("Product Management", "svpg.com"),
            ("Machine Learning", "ai.google"),
            ("Intro to AI", "ai.google"),
            ("Medieval History", "coursera.org"),
            ("Fairy tales", "coursera.org"),
        ],
    )
    async def test_keyword_defaults_on_failure(self, scripted_llm, topic, expected):
        llm = scripted_llm({"authorities": "no json"})
        found = await AuthorityFinder(llm).identify(topic)
        assert found.authorities[0].domain == expected
