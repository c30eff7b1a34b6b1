"""
API schemas package. Import from submodules or from this package.

Example:
    from api.schemas import GenerateCurriculumRequest
    from api.schemas.curriculum_schemas import PruneResponse
"""

from api.schemas.curriculum_schemas import (
    GenerateCurriculumRequest,
    PruneRequest,
    PruneResponse,
    SourceInfo,
    SourcesResponse,
)

__all__ = [
    "GenerateCurriculumRequest",
    "PruneRequest",
    "PruneResponse",
    "SourceInfo",
    "SourcesResponse",
]
