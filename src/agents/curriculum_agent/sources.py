"""
Built-in allowlist of trusted curriculum sources, grouped by trust tier.

Tier 1x entries feed direct discovery, tier 2 feeds platform aggregation,
tier 3 (text archives) is only consulted when explicitly enabled.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional
from urllib.parse import urlparse

from agents.curriculum_agent.schemas import CustomSource, DiscoveredSource


@dataclass(frozen=True)
class SourceDefinition:
    id: str
    name: str
    domain: str
    tier: str
    tier_name: str

    @property
    def is_direct(self) -> bool:
        return self.tier.startswith("1")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "domain": self.domain,
            "tier": self.tier,
            "tierName": self.tier_name,
        }


AUTHORITATIVE_SOURCES: tuple[SourceDefinition, ...] = (
    SourceDefinition("open_syllabus", "Open Syllabus", "opensyllabus.org", "1A", "University OpenCourseWare"),
    SourceDefinition("mit_ocw", "MIT OCW", "ocw.mit.edu", "1A", "University OpenCourseWare"),
    SourceDefinition("yale_oyc", "Yale Open Courses", "oyc.yale.edu", "1A", "University OpenCourseWare"),
    SourceDefinition("harvard_extension", "Harvard Extension", "pll.harvard.edu", "1A", "University OpenCourseWare"),
    SourceDefinition("cmu_oli", "Carnegie Mellon OLI", "oli.cmu.edu", "1A", "University OpenCourseWare"),
    SourceDefinition("hillsdale", "Hillsdale College", "hillsdale.edu", "1A", "University OpenCourseWare"),
    SourceDefinition("saylor", "Saylor Academy", "saylor.org", "1A", "University OpenCourseWare"),
    SourceDefinition("st_johns", "St. John's College", "sjc.edu", "1B", "Great Books Program"),
    SourceDefinition("uchicago_basic", "UChicago Basic Program", "graham.uchicago.edu", "1B", "Great Books Program"),
    SourceDefinition("great_books_academy", "Great Books Academy", "greatbooksacademy.org", "1B", "Great Books Program"),
    SourceDefinition("sattler", "Sattler College", "sattler.edu", "1B", "Great Books Program"),
    SourceDefinition("harvard_classics", "Harvard Classics", "archive.org", "1B", "Great Books Program"),
    SourceDefinition("daily_idea_philosophy", "Daily Idea Philosophy", "thedailyidea.org", "1C", "Philosophy Syllabi Collection"),
    SourceDefinition("stanford_encyclopedia", "Stanford Encyclopedia", "plato.stanford.edu", "1C", "Philosophy Syllabi Collection"),
    SourceDefinition("coursera", "Coursera", "coursera.org", "2", "MOOC Platform"),
    SourceDefinition("edx", "edX", "edx.org", "2", "MOOC Platform"),
    SourceDefinition("khan_academy", "Khan Academy", "khanacademy.org", "2", "MOOC Platform"),
    SourceDefinition("openlearn", "OpenLearn", "open.edu/openlearn", "2", "OER Repository"),
    SourceDefinition("oer_commons", "OER Commons", "oercommons.org", "2", "OER Repository"),
    SourceDefinition("merlot", "MERLOT", "merlot.org", "2", "OER Repository"),
    SourceDefinition("openstax", "OpenStax", "openstax.org", "2", "OER Repository"),
    SourceDefinition("oer_project", "OER Project", "oerproject.com", "2", "OER Repository"),
    SourceDefinition("project_gutenberg", "Project Gutenberg", "gutenberg.org", "3", "Text Repository"),
    SourceDefinition("archive_org", "Archive.org", "archive.org", "3", "Text Repository"),
)


def enabled_sources(enabled_ids: Optional[Iterable[str]] = None) -> List[SourceDefinition]:
    """All built-ins when enabled_ids is None; otherwise the listed subset, in catalogue order."""
    if enabled_ids is None:
        return list(AUTHORITATIVE_SOURCES)
    wanted = set(enabled_ids)
    return [s for s in AUTHORITATIVE_SOURCES if s.id in wanted]


def direct_tier(sources: Iterable[SourceDefinition]) -> List[SourceDefinition]:
    return [s for s in sources if s.is_direct]


def platform_tier(sources: Iterable[SourceDefinition]) -> List[SourceDefinition]:
    return [s for s in sources if s.tier == "2"]


def host_of(url: str) -> str:
    parsed = urlparse(url if "://" in url else f"https://{url}")
    host = (parsed.hostname or "").lower()
    return host[4:] if host.startswith("www.") else host


def lookup_by_url(url: str) -> Optional[SourceDefinition]:
    """Best allowlist match for a URL (longest matching domain wins)."""
    host = host_of(url)
    path = urlparse(url if "://" in url else f"https://{url}").path or ""
    best: Optional[SourceDefinition] = None
    for s in AUTHORITATIVE_SOURCES:
        domain_host, _, domain_path = s.domain.partition("/")
        if host != domain_host and not host.endswith("." + domain_host):
            continue
        if domain_path and not path.lstrip("/").startswith(domain_path):
            continue
        if best is None or len(s.domain) > len(best.domain):
            best = s
    return best


def source_from_url(url: str) -> DiscoveredSource:
    """Rebuild a DiscoveredSource for a caller-selected URL."""
    match = lookup_by_url(url)
    if match is not None:
        return DiscoveredSource(institution=match.name, course_name="", url=url, source_type=match.tier_name)
    return DiscoveredSource(institution=host_of(url) or url, course_name="", url=url, source_type="Custom Source")


def source_from_custom(custom: CustomSource) -> DiscoveredSource:
    return DiscoveredSource(institution=custom.name, course_name="", url=custom.url, source_type=custom.source_type)
