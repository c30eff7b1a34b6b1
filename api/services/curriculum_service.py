"""
Curriculum generation service.

Wraps the curriculum pipeline for the HTTP layer: SQL-backed cache, one-shot
generation, SSE streaming of pipeline progress, and re-pruning without regeneration.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from agents.core.llm import LLM
from agents.curriculum_agent import generate_curriculum, prune_curriculum
from agents.curriculum_agent.pruning import PruningResult
from agents.curriculum_agent.schemas import (
    CurriculumModule,
    CurriculumResult,
    GenerateOptions,
    LearningPathConstraints,
    PipelineSettings,
)
from api.models.models import CachedCurriculum
from api.utils.logger import bind_topic, log_request

logger = logging.getLogger(__name__)

EVENT_STAGE = "stage"
EVENT_RESULT = "result"
EVENT_ERROR = "error"
EVENT_DONE = "done"


def sse(event: str, data: Dict[str, Any]) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


class SqlCurriculumCache:
    """Cache collaborator over the cached_curricula table. DB failures degrade to a miss / skipped write."""

    def __init__(self, db: DBSession):
        self.db = db

    def get(self, topic_key: str) -> Optional[Dict[str, Any]]:
        try:
            row = self.db.query(CachedCurriculum).filter(CachedCurriculum.topic_key == topic_key).first()
        except SQLAlchemyError as e:
            logger.error("cache read failed topic=%r: %s", topic_key, e)
            self.db.rollback()
            return None
        return dict(row.payload) if row is not None and isinstance(row.payload, dict) else None

    def put(self, topic_key: str, payload: Dict[str, Any]) -> None:
        try:
            row = self.db.query(CachedCurriculum).filter(CachedCurriculum.topic_key == topic_key).first()
            if row is None:
                row = CachedCurriculum(topic_key=topic_key)
            row.payload = payload
            row.source = payload.get("source")
            row.tier = payload.get("tier")
            self.db.add(row)
            self.db.commit()
        except SQLAlchemyError as e:
            logger.error("cache write failed topic=%r: %s", topic_key, e)
            self.db.rollback()

    def delete(self, topic_key: str) -> bool:
        row = self.db.query(CachedCurriculum).filter(CachedCurriculum.topic_key == topic_key).first()
        if row is None:
            return False
        self.db.delete(row)
        self.db.commit()
        return True


class CurriculumService:
    def __init__(self, db: DBSession, llm: LLM, settings: Optional[PipelineSettings] = None):
        self.db = db
        self.llm = llm
        self.settings = settings
        self.cache = SqlCurriculumCache(db)

    async def generate(self, topic: str, options: Optional[GenerateOptions] = None) -> CurriculumResult:
        with bind_topic(topic), log_request(logger, "generate"):
            return await generate_curriculum(
                topic, options, llm=self.llm, cache=self.cache, settings=self.settings
            )

    async def stream(self, topic: str, options: Optional[GenerateOptions] = None) -> AsyncIterator[str]:
        """
        SSE: stage events while the pipeline runs, then one result event, then done.
        An unexpected pipeline failure is reported as an error event before done.
        """
        queue: asyncio.Queue[Tuple[str, Dict[str, Any]]] = asyncio.Queue()

        def on_event(event_type: str, data: Dict[str, Any]) -> None:
            queue.put_nowait((event_type, data))

        async def run() -> CurriculumResult:
            with bind_topic(topic), log_request(logger, "stream"):
                return await generate_curriculum(
                    topic,
                    options,
                    llm=self.llm,
                    cache=self.cache,
                    settings=self.settings,
                    event_callback=on_event,
                )

        task = asyncio.create_task(run())
        try:
            while not (task.done() and queue.empty()):
                try:
                    event_type, data = await asyncio.wait_for(queue.get(), timeout=0.1)
                except asyncio.TimeoutError:
                    continue
                logger.debug("curriculum SSE: type=%s stage=%s", event_type, data.get("stage"))
                yield sse(EVENT_STAGE, {"type": event_type, **data})
        finally:
            # Client went away mid-stream.
            if not task.done():
                task.cancel()

        try:
            result = task.result()
        except Exception as e:
            logger.exception("curriculum stream failed topic=%r", topic)
            yield sse(EVENT_ERROR, {"error": "Curriculum generation failed", "detail": type(e).__name__})
        else:
            yield sse(EVENT_RESULT, result.to_serializable())
        yield sse(EVENT_DONE, {"topic": topic})

    @staticmethod
    def prune(
        modules: List[CurriculumModule], constraints: Optional[LearningPathConstraints] = None
    ) -> PruningResult:
        return prune_curriculum(modules, constraints)
