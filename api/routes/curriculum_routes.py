"""
Curriculum endpoints.

POST /curriculum/generate runs the tiered pipeline and returns the result;
GET /curriculum/stream runs it with SSE progress (stage, result, done).
POST /curriculum/prune re-applies depth/time constraints without regenerating.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from agents.core.llm import LLM
from agents.curriculum_agent.schemas import GenerateOptions
from agents.curriculum_agent.sources import AUTHORITATIVE_SOURCES
from api.bootstrap import get_llm
from api.config import get_db, get_settings
from api.schemas.curriculum_schemas import (
    GenerateCurriculumRequest,
    PruneRequest,
    PruneResponse,
    SourceInfo,
    SourcesResponse,
)
from api.services.curriculum_service import CurriculumService, SqlCurriculumCache

curriculum_routes = APIRouter()


def get_curriculum_service(
    db: Session = Depends(get_db),
    llm: LLM = Depends(get_llm),
) -> CurriculumService:
    return CurriculumService(db, llm, get_settings().pipeline_settings())


@curriculum_routes.get("/sources", response_model=SourcesResponse, response_model_by_alias=True)
async def list_sources() -> SourcesResponse:
    """Built-in source allowlist, highest trust tier first."""
    return SourcesResponse(sources=[SourceInfo(**s.to_dict()) for s in AUTHORITATIVE_SOURCES])


@curriculum_routes.post("/generate")
async def generate(
    body: GenerateCurriculumRequest,
    service: CurriculumService = Depends(get_curriculum_service),
) -> dict:
    """
    Generate (or load from cache) a curriculum for the topic.
    Always returns at least one module; fallback content is signalled only by `source`.
    """
    result = await service.generate(body.topic, body.options)
    return result.to_serializable()


@curriculum_routes.get("/stream")
async def stream(
    topic: str = Query(..., min_length=1, max_length=200),
    force_refresh: bool = Query(False),
    use_authority_guided_discovery: bool = Query(False),
    service: CurriculumService = Depends(get_curriculum_service),
) -> StreamingResponse:
    """
    Stream curriculum generation. SSE: stage (stage_start / stage_complete), result, done; error on failure.
    """
    if not topic.strip():
        raise HTTPException(status_code=422, detail="topic must not be blank")
    options = GenerateOptions(
        force_refresh=force_refresh,
        use_authority_guided_discovery=use_authority_guided_discovery,
    )

    async def event_generator():
        async for event in service.stream(topic, options):
            yield event

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@curriculum_routes.post("/prune", response_model=PruneResponse, response_model_by_alias=True)
async def prune(body: PruneRequest) -> PruneResponse:
    """Re-apply depth/time constraints to an existing module list (show full curriculum / adjust settings)."""
    pruned = CurriculumService.prune(body.modules, body.constraints)
    return PruneResponse(modules=pruned.modules, visible_modules=pruned.visible, pruning_stats=pruned.stats)


@curriculum_routes.get("/cache/{topic}")
async def get_cached(topic: str, db: Session = Depends(get_db)) -> dict:
    """Cached (unpruned) result for the exact topic string."""
    cached = SqlCurriculumCache(db).get(topic)
    if cached is None:
        raise HTTPException(status_code=404, detail="No cached curriculum for topic")
    return cached


@curriculum_routes.delete("/cache/{topic}", status_code=204)
async def delete_cached(topic: str, db: Session = Depends(get_db)) -> Response:
    if not SqlCurriculumCache(db).delete(topic):
        raise HTTPException(status_code=404, detail="No cached curriculum for topic")
    return Response(status_code=204)
