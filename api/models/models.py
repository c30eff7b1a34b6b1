from api.config import Base
from sqlalchemy import Column, String, JSON, DateTime, Integer
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CachedCurriculum(Base):
    __tablename__ = "cached_curricula"
    topic_key = Column(String, primary_key=True, index=True)  # exact topic string
    payload = Column(JSON, nullable=False)  # unpruned CurriculumResult, camelCase
    source = Column(String, nullable=True)  # provenance label, for inspection
    tier = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)
