"""
config.py
-----------
Typed configuration loader for environment variables, pathing, and constants.
This centralizes settings so other modules can import a single authoritative source.
"""
from __future__ import annotations
import os
from pathlib import Path
from pydantic import BaseModel, Field
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes"}


class Settings(BaseModel):
    openai_api_key: str = Field(default_factory=lambda: os.getenv("OPENAI_API_KEY", ""))
    openai_model: str = Field(default_factory=lambda: os.getenv("OPENAI_MODEL", "gpt-4o-mini"))
    openai_temperature: float = Field(default_factory=lambda: float(os.getenv("OPENAI_TEMPERATURE", "0")))
    request_timeout: float = Field(default_factory=lambda: float(os.getenv("REQUEST_TIMEOUT", "60")))
    tavily_api_key: str = Field(default_factory=lambda: os.getenv("TAVILY_API_KEY", ""))
    search_max_results: int = Field(default_factory=lambda: int(os.getenv("SEARCH_MAX_RESULTS", "5")))
    dev_no_llm: bool = Field(default_factory=lambda: _env_flag("DEV_NO_LLM"))
    workflow: str = Field(default_factory=lambda: os.getenv("WORKFLOW", "multi"))
    max_graph_steps: int = Field(default_factory=lambda: int(os.getenv("MAX_GRAPH_STEPS", "25")))
    checkpoint_backend: str = Field(default_factory=lambda: os.getenv("CHECKPOINT_BACKEND", "memory"))
    checkpoint_db: str = Field(default_factory=lambda: os.getenv("CHECKPOINT_DB", "./data/checkpoints.sqlite"))
    static_dir: str = Field(default_factory=lambda: os.getenv("STATIC_DIR", "public"))
    host: str = Field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = Field(default_factory=lambda: int(os.getenv("PORT", "2999")))
    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    @property
    def offline(self) -> bool:
        """True when no generation calls should leave the process."""
        return self.dev_no_llm or not self.openai_api_key

    def ensure_dirs(self) -> None:
        if self.checkpoint_backend == "sqlite":
            Path(self.checkpoint_db).parent.mkdir(parents=True, exist_ok=True)

settings = Settings()
settings.ensure_dirs()
