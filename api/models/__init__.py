"""
API data models. Single import surface for DB entities.

DB entities (api.models.models):
- CachedCurriculum
"""

from api.models.models import Base, CachedCurriculum

__all__ = [
    "Base",
    "CachedCurriculum",
]
