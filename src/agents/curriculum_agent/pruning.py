"""
Depth/time pruning over a finished curriculum.

Nothing is removed from the list: every module is annotated with a priority,
an hour estimate and hidden flags, so the full curriculum can be shown again
without regenerating it.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence

from agents.curriculum_agent.schemas import (
    CurriculumModule,
    Depth,
    FeasibilityReport,
    LearningPathConstraints,
    Priority,
    PruningStats,
)

CORE_SHARE = 0.3
MIN_CORE = 4
MAX_CORE = 6

BASE_HOURS = 2.0
CAPSTONE_HOURS = 4.0
SKILL_MULTIPLIER: Dict[str, float] = {"beginner": 1.5, "intermediate": 1.0, "advanced": 0.7}
DEPTH_MULTIPLIER: Dict[str, float] = {"overview": 0.5, "standard": 1.0, "detailed": 1.5}

DEPTH_KEEPS: Dict[str, frozenset] = {
    "overview": frozenset({"core"}),
    "standard": frozenset({"core", "important"}),
    "detailed": frozenset({"core", "important", "nice_to_have"}),
}

# Lower rank is removed first by the time filter.
_REMOVAL_RANK = {"nice_to_have": 0, "important": 1}

_OPTIONAL_SOUNDING = re.compile(
    r"\b(?:historical|history of|advanced|optional|elective|supplementary|special topics|deep dive|bonus)\b",
    re.IGNORECASE,
)

# Planning hours per depth, before the skill multiplier.
DEPTH_THRESHOLDS: Dict[str, Dict[str, float]] = {
    "overview": {"min": 5, "typical": 10},
    "standard": {"min": 15, "typical": 30},
    "detailed": {"min": 50, "typical": 80},
}
DEPTH_COVERAGE: Dict[str, int] = {"overview": 40, "standard": 75, "detailed": 100}
PLANNING_SKILL_MULTIPLIER: Dict[str, float] = {"beginner": 1.3, "intermediate": 1.0, "advanced": 0.7}
INTENSIVE_HOURS_PER_WEEK = 40


@dataclass
class PruningResult:
    modules: List[CurriculumModule]
    visible: List[CurriculumModule]
    stats: PruningStats


def final_capstone_index(modules: Sequence[CurriculumModule]) -> Optional[int]:
    """Index of the terminal capstone: last capstone in the final three slots or titled 'final'."""
    total = len(modules)
    found: Optional[int] = None
    for i, m in enumerate(modules):
        if m.is_capstone and (i >= total - 3 or "final" in m.title.lower()):
            found = i
    return found


def core_prefix_length(total: int) -> int:
    return min(total, max(MIN_CORE, min(MAX_CORE, math.ceil(total * CORE_SHARE))))


def classify_priorities(modules: Sequence[CurriculumModule]) -> List[Priority]:
    final_idx = final_capstone_index(modules)
    core_count = core_prefix_length(len(modules))
    out: List[Priority] = []
    for i, m in enumerate(modules):
        if m.is_capstone:
            out.append("core" if i == final_idx else "important")
        elif i < core_count:
            out.append("core")
        elif _OPTIONAL_SOUNDING.search(m.title) or _OPTIONAL_SOUNDING.search(m.tag or ""):
            out.append("nice_to_have")
        else:
            out.append("important")
    return out


def estimate_hours(module: CurriculumModule, constraints: LearningPathConstraints) -> float:
    base = CAPSTONE_HOURS if module.is_capstone else BASE_HOURS
    return base * SKILL_MULTIPLIER[constraints.skill_level] * DEPTH_MULTIPLIER[constraints.depth]


def _hours(modules: Sequence[CurriculumModule]) -> float:
    return round(sum(m.estimated_hours or 0.0 for m in modules), 1)


@dataclass(frozen=True)
class DepthRecommendation:
    depth: Optional[Depth]
    feasible: bool
    coverage_percentage: int


def compute_recommended_depth(total_hours: float, skill_level: str) -> DepthRecommendation:
    """Deepest level whose minimum planning hours fit the available hours at this skill level."""
    adjusted = total_hours / PLANNING_SKILL_MULTIPLIER[skill_level]
    if adjusted < DEPTH_THRESHOLDS["overview"]["min"]:
        return DepthRecommendation(depth=None, feasible=False, coverage_percentage=0)
    depth: Depth = "overview"
    if adjusted >= DEPTH_THRESHOLDS["detailed"]["min"]:
        depth = "detailed"
    elif adjusted >= DEPTH_THRESHOLDS["standard"]["min"]:
        depth = "standard"
    return DepthRecommendation(depth=depth, feasible=True, coverage_percentage=DEPTH_COVERAGE[depth])


def validate_feasibility(hours_per_week: float, duration_weeks: float, skill_level: str) -> FeasibilityReport:
    total_hours = hours_per_week * duration_weeks
    min_required = DEPTH_THRESHOLDS["overview"]["min"] * PLANNING_SKILL_MULTIPLIER[skill_level]

    if total_hours < min_required:
        suggestions: List[str] = []
        min_per_week: Optional[int] = None
        min_weeks: Optional[int] = None
        if duration_weeks > 0:
            min_per_week = math.ceil(min_required / duration_weeks)
            suggestions.append(f"Increase to {min_per_week} hours/week")
        if hours_per_week > 0:
            min_weeks = math.ceil(min_required / hours_per_week)
            suggestions.append(f"Extend duration to {min_weeks} weeks")
        return FeasibilityReport(
            status="impossible",
            message=(
                f"Your {total_hours:g} available hours aren't enough for even an overview "
                f"(minimum {math.ceil(min_required)} hours needed)."
            ),
            suggestions=suggestions,
            minimum_hours_needed=round(min_required, 1),
            minimum_weeks_needed=min_weeks,
            minimum_hours_per_week=min_per_week,
        )

    if hours_per_week > INTENSIVE_HOURS_PER_WEEK:
        return FeasibilityReport(
            status="warning",
            message="This is an intensive schedule (over 40 hours/week). Make sure you have the time.",
            suggestions=["Reduce to 20 hours/week"],
        )

    if skill_level == "beginner" and duration_weeks < 2 and hours_per_week < 10:
        return FeasibilityReport(
            status="warning",
            message="As a beginner with limited time, you may find this pace challenging.",
            suggestions=["Extend to 4 weeks", "Increase to 5 hours/week"],
        )

    return FeasibilityReport(
        status="valid",
        message="Your plan is achievable! This pace allows comfortable learning with review time.",
    )


def prune_curriculum(
    modules: Sequence[CurriculumModule],
    constraints: Optional[LearningPathConstraints] = None,
    *,
    today: Optional[date] = None,
) -> PruningResult:
    constraints = constraints or LearningPathConstraints()
    annotated = [m.model_copy(deep=True) for m in modules]
    priorities = classify_priorities(annotated)
    keeps = DEPTH_KEEPS[constraints.depth]

    for m, priority in zip(annotated, priorities):
        m.priority = priority
        m.estimated_hours = round(estimate_hours(m, constraints), 2)
        m.is_hidden_for_depth = priority not in keeps
        m.is_hidden_for_time = False

    after_depth = [m for m in annotated if not m.is_hidden_for_depth]
    hours_after_depth = _hours(after_depth)

    budget_hours: Optional[float] = None
    weeks_available: Optional[float] = None
    recommendation: Optional[DepthRecommendation] = None
    feasibility: Optional[FeasibilityReport] = None
    has_time_constraint = constraints.goal_date is not None
    if has_time_constraint:
        days = (constraints.goal_date - (today or date.today())).days
        weeks_available = round(max(days, 0) / 7, 2)
        budget_hours = round(weeks_available * constraints.hours_per_week, 1)
        _apply_time_budget(annotated, budget_hours)
        recommendation = compute_recommended_depth(budget_hours, constraints.skill_level)
        feasibility = validate_feasibility(constraints.hours_per_week, weeks_available, constraints.skill_level)

    visible = [m for m in annotated if not (m.is_hidden_for_depth or m.is_hidden_for_time)]
    full_hours = _hours(annotated)
    final_hours = _hours(visible)
    stats = PruningStats(
        full_curriculum_steps=len(annotated),
        full_curriculum_hours=full_hours,
        depth_label=constraints.depth,
        steps_after_depth_filter=len(after_depth),
        hours_after_depth_filter=hours_after_depth,
        steps_hidden_by_depth=len(annotated) - len(after_depth),
        has_time_constraint=has_time_constraint,
        steps_hidden_by_time=sum(1 for m in annotated if m.is_hidden_for_time),
        budget_hours=budget_hours,
        weeks_available=weeks_available,
        final_visible_steps=len(visible),
        final_estimated_hours=final_hours,
        hours_saved=round(full_hours - final_hours, 1),
        hidden_by_depth_titles=[m.title for m in annotated if m.is_hidden_for_depth],
        hidden_by_time_titles=[m.title for m in annotated if m.is_hidden_for_time],
        recommended_depth=recommendation.depth if recommendation else None,
        recommended_coverage=recommendation.coverage_percentage if recommendation else None,
        feasibility=feasibility,
    )
    return PruningResult(modules=annotated, visible=visible, stats=stats)


def _apply_time_budget(annotated: List[CurriculumModule], budget_hours: float) -> None:
    """Hide removable modules, lowest priority and latest position first, until the budget fits."""
    remaining = sum(m.estimated_hours or 0.0 for m in annotated if not m.is_hidden_for_depth)
    if remaining <= budget_hours:
        return
    removable = [
        (i, m) for i, m in enumerate(annotated)
        if not m.is_hidden_for_depth and m.priority != "core"
    ]
    removable.sort(key=lambda pair: (_REMOVAL_RANK.get(pair[1].priority or "important", 1), -pair[0]))
    for _, m in removable:
        if remaining <= budget_hours:
            break
        m.is_hidden_for_time = True
        remaining -= m.estimated_hours or 0.0
