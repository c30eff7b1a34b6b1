"""
Unit test fixtures. Generation is always scripted; no network, no real DB.
"""
import pytest

from agents.curriculum_agent.schemas import PipelineSettings


@pytest.fixture
def pipeline_settings():
    """Pipeline settings with a wider fan-out than the default and a lower tier threshold."""
    return PipelineSettings(max_sources_per_run=5, max_concurrent_requests=2, min_modules_per_tier=3)
