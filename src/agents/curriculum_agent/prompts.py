"""
Prompt text for every curriculum stage. Builders return (system, user) pairs.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple

from agents.curriculum_agent.schemas import (
    CourseGrammar,
    CurriculumModule,
    DiscoveredSource,
    DomainAuthority,
    TopicPillar,
)
from agents.curriculum_agent.sources import SourceDefinition

JSON_ONLY = "Return ONLY valid JSON, no other text."


def _source_lines(sources: Iterable[SourceDefinition]) -> str:
    return "\n".join(f"- {s.name} ({s.domain}) [tier {s.tier}: {s.tier_name}]" for s in sources)


def discovery_prompt(
    topic: str,
    allowlist: Sequence[SourceDefinition],
    custom: Sequence[DiscoveredSource] = (),
) -> Tuple[str, str]:
    system = (
        "You are an academic research librarian. You find REAL, verifiable course syllabi, "
        "reading lists and course structures. Never invent URLs. You MUST return valid JSON only."
    )
    custom_block = ""
    if custom:
        custom_block = "\nAlso check these user-supplied sources:\n" + "\n".join(
            f"- {c.institution} ({c.url}) [{c.source_type}]" for c in custom
        )
    user = f"""Find existing syllabi or course structures for "{topic}".

Search these trusted sources, highest tier first:
{_source_lines(allowlist) or '- (no built-in sources enabled)'}{custom_block}

Return JSON in this exact format:
{{
  "sources": [
    {{"institution": "MIT OCW", "courseName": "Actual course title", "url": "https://ocw.mit.edu/...", "type": "University OpenCourseWare"}}
  ]
}}

Requirements:
- Only list courses you can verify exist
- Use the exact course URL
- Return up to 8 sources, most authoritative first
{JSON_ONLY}"""
    return system, user


def authority_discovery_prompt(
    topic: str,
    authorities: Sequence[DomainAuthority],
    pillars: Sequence[TopicPillar],
) -> Tuple[str, str]:
    system = (
        "You are a domain researcher. You find curricula, guides and course structures published by "
        "recognised authorities in a field. Never invent URLs. You MUST return valid JSON only."
    )
    authority_lines = "\n".join(
        f"- {a.name} ({a.domain}): {a.authority_reason or a.authority_type}" for a in authorities
    )
    pillar_lines = "\n".join(
        f"- {p.name}: {', '.join(p.search_terms[:3]) or p.name}" for p in pillars
    )
    user = f"""Find learning material for "{topic}" published by these standard bearers:
{authority_lines}

Cover these pedagogical pillars:
{pillar_lines}

Return JSON:
{{
  "sources": [
    {{"institution": "Authority name", "courseName": "Course or guide title", "url": "https://...", "type": "Industry Authority"}}
  ]
}}
{JSON_ONLY}"""
    return system, user


def fetch_content_prompt(url: str, topic: str) -> Tuple[str, str]:
    system = (
        "You are a syllabus extractor. Reproduce the syllabus text found at a URL verbatim: "
        "course description, schedule, topics and readings, in their original order. "
        "Do not summarise and do not add commentary."
    )
    user = f"""Reproduce the full syllabus text for the "{topic}" course at:
{url}

Include every listed lecture, week, unit or reading in the original order."""
    return system, user


def module_extraction_prompt(source: DiscoveredSource) -> Tuple[str, str]:
    system = (
        "You are a curriculum analyst. You segment raw syllabus text into an ordered list of topics. "
        "You MUST preserve the original sequence and return valid JSON only."
    )
    user = f"""Source: {source.institution} - {source.course_name or 'course'} ({source.url})

Raw syllabus text:
\"\"\"
{source.content}
\"\"\"

Segment this syllabus into topics:
- Keep the ORIGINAL order; never reorder topics
- Group 3-5 consecutive related topics into one module
- Label every topic "Module X - Step Y: <topic>"; never use "Week N" labels
- Give each topic a one-sentence description

Return JSON:
{{
  "modules": [
    {{"title": "Module 1 - Step 1: <topic>", "tag": "Foundations", "description": "One sentence", "isCapstone": false}}
  ]
}}
{JSON_ONLY}"""
    return system, user


def _module_titles(modules: Sequence[CurriculumModule], limit: int = 40) -> str:
    return "\n".join(f"  - {m.title}" for m in modules[:limit])


def merge_prompt(topic: str, per_source: Sequence[Tuple[DiscoveredSource, List[CurriculumModule]]]) -> Tuple[str, str]:
    system = (
        "You are a curriculum editor. You merge several syllabi for the same discipline into one "
        "deduplicated, logically ordered syllabus while keeping full source attribution. "
        "You MUST return valid JSON only."
    )
    blocks = "\n\n".join(
        f"=== Source {i + 1}: {src.institution} - {src.course_name or 'course'} ===\nURL: {src.url}\n{_module_titles(mods)}"
        for i, (src, mods) in enumerate(per_source)
    )
    user = f"""Merge these syllabi for "{topic}" into one curriculum:

{blocks}

Rules:
- Remove duplicate topics; keep one step per distinct topic
- A step covered by several sources must list ALL their URLs in "sourceUrls"
- Preserve the pedagogical sequence of the sources; do not alphabetise or re-sort
- Label steps "Module X - Step Y: <topic>"

Return JSON:
{{
  "modules": [
    {{"title": "Module 1 - Step 1: <topic>", "tag": "Foundations", "sourceUrls": ["https://..."], "description": "One sentence"}}
  ]
}}
{JSON_ONLY}"""
    return system, user


def _grammar_block(grammar: Optional[CourseGrammar]) -> str:
    if grammar is None:
        return ""
    mastery = grammar.mastery_outcome
    intents = "\n".join(
        f"- {i.pillar_name}: {i.learning_intent or 'core competence'}"
        + (f"; emphasize: {', '.join(i.emphasize)}" if i.emphasize else "")
        + (f"; exclude: {', '.join(i.exclude)}" if i.exclude else "")
        + (f"; checkpoint: {i.summative_checkpoint}" if i.summative_checkpoint else "")
        for i in grammar.module_intents
    )
    lines = [
        "COURSE GRAMMAR:",
        f"Mastery outcome: {mastery.short_term}",
        f"Evidence of mastery ({mastery.capstone_type}): {mastery.evidence_of_mastery}",
        f"Cognitive verbs: {', '.join(mastery.cognitive_verbs)}",
    ]
    if intents:
        lines += ["Module intents:", intents]
    if grammar.lesson_grammar.bottlenecks:
        lines.append(f"Known bottlenecks (add drills): {', '.join(grammar.lesson_grammar.bottlenecks)}")
    return "\n".join(lines) + "\n\n"


def course_grammar_prompt(topic: str, pillars: Sequence[TopicPillar], narrative_flow: str) -> Tuple[str, str]:
    system = """You are an expert in learner-centered course design. Design course architecture with BACKWARD DESIGN:
1. Define what the learner can DO at course end before choosing content
2. Decompose the subject into facts (memorize), concepts (understand) and procedures (practice)
3. Align objectives, activities and assessments on the same cognitive verbs (Bloom's revised)
4. Prefer practice contexts that resemble real-world use
5. Name likely bottlenecks and the drills that isolate them

Respond ONLY with valid JSON."""
    pillar_lines = "\n".join(f"{i + 1}. {p.name} ({p.priority})" for i, p in enumerate(pillars))
    user = f"""Design the course grammar for: "{topic}"

PEDAGOGICAL PILLARS:
{pillar_lines}

NARRATIVE FLOW: {narrative_flow}

Return JSON:
{{
  "metalearning": {{
    "learnerMotivation": "intrinsic" | "extrinsic" | "mixed",
    "knowledgeDecomposition": {{"facts": ["..."], "concepts": ["..."], "procedures": ["..."]}},
    "academicBenchmarks": ["MIT 6.001"]
  }},
  "masteryOutcome": {{
    "shortTerm": "By end of course, learner can ...",
    "longTerm": "6 months later, learner can ...",
    "evidenceOfMastery": "Complete a ...",
    "capstoneType": "project" | "essay" | "analysis" | "presentation" | "portfolio" | "practical_demonstration",
    "cognitiveVerbs": ["Analyze", "Create"]
  }},
  "moduleIntents": [
    {{"pillarName": "Pillar Name", "learningIntent": "Why this module exists", "summativeCheckpoint": "How mastery is shown", "emphasize": ["..."], "exclude": ["..."]}}
  ],
  "lessonGrammar": {{
    "narrativeArc": "From X to Y",
    "bottlenecks": ["..."],
    "drillOpportunities": ["..."],
    "directPracticeContexts": ["..."]
  }}
}}"""
    return system, user


def synthesis_prompt(
    topic: str,
    pillars: Sequence[TopicPillar],
    narrative_flow: str,
    per_source: Sequence[Tuple[DiscoveredSource, List[CurriculumModule]]],
    grammar: Optional[CourseGrammar] = None,
) -> Tuple[str, str]:
    system = (
        "You are a senior instructional designer and curriculum architect. You design taught courses, "
        "not resource compilations: you SELECT the best material for each pillar and DISCARD the rest. "
        "You MUST return valid JSON only."
    )
    pillar_lines = "\n".join(
        f"{i + 1}. {p.name} ({p.priority}) - Search: {', '.join(p.search_terms[:2])}" for i, p in enumerate(pillars)
    )
    blocks = "\n\n".join(
        f"=== Source {i + 1}: {src.institution} - {src.course_name or 'course'} ===\nURL: {src.url}\nType: {src.source_type}\n{_module_titles(mods, 10)}"
        for i, (src, mods) in enumerate(per_source)
    )
    user = f"""Design a curriculum for "{topic}".

PEDAGOGICAL PILLARS:
{pillar_lines}

NARRATIVE FLOW:
{narrative_flow}

{_grammar_block(grammar)}RAW SOURCE MATERIALS:
{blocks}

Task:
- For each pillar, select only the best source material; omit redundant or weak material
- Sequence from novice to expert following the narrative flow
- Honor the course grammar when given: emphasize and exclude as listed, and make the capstone its evidence of mastery
- Target 8-15 modules; end with a capstone that demonstrates mastery

Return JSON:
{{
  "modules": [
    {{"title": "Module 1 - Step 1: <topic>", "tag": "Foundations", "pillar": "Pillar name", "sourceUrl": "https://...", "description": "One sentence"}},
    {{"title": "Create your <capstone deliverable>", "tag": "Capstone Integration", "isCapstone": true, "description": "One sentence"}}
  ]
}}
{JSON_ONLY}"""
    return system, user


def platform_aggregation_prompt(topic: str, platforms: Sequence[SourceDefinition]) -> Tuple[str, str]:
    system = (
        "You are a curriculum aggregator. Find real courses on MOOC and OER platforms, extract their "
        "syllabi, and aggregate them into one coherent structure. You MUST return valid JSON only."
    )
    names = ", ".join(f"{p.name} ({p.domain})" for p in platforms) or "Coursera (coursera.org), edX (edx.org)"
    user = f"""Search for courses on "{topic}" from {names}. Look for syllabi with modules or learning units.

Aggregate the content into 6-8 modules with specific topics. Return JSON:
{{
  "modules": [
    {{"title": "Module 1 - Step 1: <topic from an actual course>", "tag": "Theory", "source": "Coursera", "sourceUrl": "https://www.coursera.org/..."}}
  ],
  "aggregatedFrom": ["https://www.coursera.org/...", "https://www.edx.org/..."]
}}
{JSON_ONLY}"""
    return system, user


def course_design_prompt(topic: str, grammar: Optional[CourseGrammar] = None) -> Tuple[str, str]:
    system = (
        "You are a curriculum designer using Backward Design. You design course structures from general "
        "knowledge when no published syllabus is available. You MUST return valid JSON only."
    )
    user = f"""Design an 8-step course on "{topic}" in three phases:
- Phase 1 (steps 1-2): Foundational concepts
- Phase 2 (steps 3-5): Application and practice
- Phase 3 (steps 6-8): Synthesis and integration

{_grammar_block(grammar)}Return JSON:
{{
  "modules": [
    {{"title": "Module 1 - Step 1: <specific foundational topic>", "tag": "Foundations"}},
    {{"title": "Module 2 - Step 1: <application topic>", "tag": "Application"}},
    {{"title": "Module 3 - Step 1: <synthesis topic>", "tag": "Synthesis"}}
  ]
}}
{JSON_ONLY}"""
    return system, user


def topic_analysis_prompt(topic: str) -> Tuple[str, str]:
    system = """You are a Senior Instructional Designer. Decompose learning topics into 4-6 PEDAGOGICAL PILLARS.

COMPOSITION TYPES:
1. single - a traditional academic discipline (Physics, History)
2. composite_program - a program combining disciplines (MBA, Data Science Bootcamp)
3. vocational - a practical skill or craft (French Cooking, Carpentry, Project Management)

Respond ONLY with valid JSON."""
    user = f"""Analyze this topic and design its curriculum architecture: "{topic}"

Return JSON:
{{
  "compositionType": "single" | "composite_program" | "vocational",
  "constituentDisciplines": ["Discipline 1"],
  "pillars": [
    {{"name": "Pillar Name", "searchTerms": ["term 1", "term 2"], "recommendedSources": ["coursera.org"], "priority": "core" | "important" | "nice-to-have"}}
  ],
  "narrativeFlow": "How the curriculum progresses from beginner to expert",
  "recommendedSources": ["domain.edu"],
  "vocationalFirst": true | false
}}"""
    return system, user


def authority_prompt(topic: str) -> Tuple[str, str]:
    system = """You are a Domain Researcher. Identify the "Standard Bearers" for a topic: the undisputed
authorities, standard bodies and elite practitioners.

Rules:
1. No popular blogs or generic sources
2. Prefer organizations that DEFINE standards in the field
3. Prefer industry leaders over academia for vocational topics
4. Every authority needs a specific, verifiable domain

Return valid JSON only."""
    user = f"""Identify 3-6 authoritative sources for: "{topic}"

Return JSON:
{{
  "authorities": [
    {{"name": "Organization", "domain": "example.com", "authorityType": "industry_standard" | "academic" | "practitioner" | "standard_body", "authorityReason": "Why", "focusAreas": ["Area"]}}
  ],
  "searchStrategy": "How to search these sources for {topic} content"
}}"""
    return system, user
