import logging
from functools import lru_cache
from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from agents.curriculum_agent.schemas import PipelineSettings

load_dotenv()

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Service configuration, read from the environment (and .env)."""
    model_config = SettingsConfigDict(extra="ignore")

    database_url: str = "sqlite:///./curriculum.db"
    generation_provider: Literal["perplexity", "ollama"] = "perplexity"
    perplexity_api_key: Optional[str] = None
    perplexity_base_url: str = "https://api.perplexity.ai"
    generation_model: str = "sonar-pro"
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "qwen:latest"
    rate_limit_delay_seconds: float = 1.0
    max_retries: int = 3
    request_timeout_seconds: float = 60.0
    max_sources_per_run: int = 4
    max_concurrent_requests: int = 3
    min_modules_per_tier: int = 4
    log_level: str = "INFO"
    log_dir: str = "logs"
    cors_origins: List[str] = ["*"]

    def pipeline_settings(self) -> PipelineSettings:
        return PipelineSettings(
            model=self.generation_model,
            min_modules_per_tier=self.min_modules_per_tier,
            max_sources_per_run=self.max_sources_per_run,
            max_concurrent_requests=self.max_concurrent_requests,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()

_connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}
engine = create_engine(settings.database_url, connect_args=_connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def reset_db():
    Base.metadata.drop_all(bind=engine)
    logger.info("database dropped url=%s", engine.url)
    create_db()


def create_db():
    Base.metadata.create_all(bind=engine)
    logger.info("database ready url=%s", engine.url)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
