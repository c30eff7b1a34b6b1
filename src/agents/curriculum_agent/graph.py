"""
LangGraph tier controller: tier1 -> [tier2 -> [tier3]] -> weave.

Strictly sequential, never loops back. A tier that raises a GenerationError
or under-produces falls through to the next one; tier3 always yields modules.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Literal, Optional, TypedDict

from agents.core.errors import GenerationError
from agents.curriculum_agent.schemas import DiscoveredSource, GenerateOptions
from agents.curriculum_agent.stages.source_discoverer import merge_sources
from agents.curriculum_agent.stages.tiers import TierOutcome, weave_capstone_checkpoints

if TYPE_CHECKING:
    from agents.curriculum_agent.pipeline import CurriculumPipeline

logger = logging.getLogger(__name__)


class TierGraphState(TypedDict, total=False):
    topic: str
    options: GenerateOptions
    outcome: Optional[TierOutcome]
    raw_sources: List[DiscoveredSource]
    tiers_tried: List[int]


def build_tier_graph(pipeline: "CurriculumPipeline"):
    """Compile the tier state machine around one pipeline's stages."""
    from langgraph.graph import END, StateGraph

    min_modules = pipeline.settings.min_modules_per_tier

    def _accepted(outcome: Optional[TierOutcome]) -> bool:
        return outcome is not None and outcome.content_count() >= min_modules

    def _update(state: TierGraphState, tier: int, outcome: Optional[TierOutcome]) -> Dict[str, Any]:
        raw = list(state.get("raw_sources") or [])
        if outcome is not None and outcome.discovered:
            raw = merge_sources(raw, outcome.discovered)
        count = outcome.content_count() if outcome is not None else 0
        accepted = _accepted(outcome)
        logger.info(
            "tier %s topic=%r modules=%s %s",
            tier, state["topic"], count, "accepted" if accepted else "falling through",
        )
        pipeline.emit("stage_complete", {"stage": f"tier{tier}", "modules_count": count, "accepted": accepted})
        return {
            "outcome": outcome if accepted or tier == 3 else None,
            "raw_sources": raw,
            "tiers_tried": list(state.get("tiers_tried") or []) + [tier],
        }

    async def tier1_node(state: TierGraphState) -> Dict[str, Any]:
        pipeline.emit("stage_start", {"stage": "tier1"})
        try:
            outcome = await pipeline.run_direct_tier(state["topic"], state["options"])
        except GenerationError as e:
            logger.warning("tier 1 aborted topic=%r: %s", state["topic"], e)
            outcome = None
        return _update(state, 1, outcome)

    async def tier2_node(state: TierGraphState) -> Dict[str, Any]:
        pipeline.emit("stage_start", {"stage": "tier2"})
        try:
            outcome = await pipeline.run_platform_tier(state["topic"], state["options"])
        except GenerationError as e:
            logger.warning("tier 2 aborted topic=%r: %s", state["topic"], e)
            outcome = None
        return _update(state, 2, outcome)

    async def tier3_node(state: TierGraphState) -> Dict[str, Any]:
        pipeline.emit("stage_start", {"stage": "tier3"})
        outcome = await pipeline.run_generative_tier(state["topic"])
        return _update(state, 3, outcome)

    def weave_node(state: TierGraphState) -> Dict[str, Any]:
        outcome = state["outcome"]
        # Tier 1 merge and synthesis already shaped their capstones.
        modules = weave_capstone_checkpoints(outcome.modules, state["topic"], checkpoints=outcome.tier != 1)
        pipeline.emit("stage_complete", {"stage": "weave", "modules_count": len(modules)})
        return {
            "outcome": TierOutcome(
                tier=outcome.tier,
                modules=modules,
                source=outcome.source,
                source_url=outcome.source_url,
                composition_type=outcome.composition_type,
                discovered=outcome.discovered,
            )
        }

    def route_after_tier1(state: TierGraphState) -> Literal["tier2", "weave"]:
        return "weave" if state.get("outcome") is not None else "tier2"

    def route_after_tier2(state: TierGraphState) -> Literal["tier3", "weave"]:
        return "weave" if state.get("outcome") is not None else "tier3"

    g = StateGraph(TierGraphState)
    g.add_node("tier1", tier1_node)
    g.add_node("tier2", tier2_node)
    g.add_node("tier3", tier3_node)
    g.add_node("weave", weave_node)

    g.set_entry_point("tier1")
    g.add_conditional_edges("tier1", route_after_tier1, {"tier2": "tier2", "weave": "weave"})
    g.add_conditional_edges("tier2", route_after_tier2, {"tier3": "tier3", "weave": "weave"})
    g.add_edge("tier3", "weave")
    g.add_edge("weave", END)

    return g.compile()
