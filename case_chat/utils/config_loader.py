import os
from pathlib import Path
from typing import Literal, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, model_validator

from case_chat.exception.custom_exception import ConfigurationError
from case_chat.prompts.prompt_library import DEFAULT_FALLBACK_ANSWER, DEFAULT_SYSTEM_PROMPT


def _package_root() -> Path:
    # case_chat/utils/config_loader.py -> case_chat/
    return Path(__file__).resolve().parents[1]


def load_config(config_path: str | None = None) -> dict:
    """Read the raw YAML configuration (CONFIG_PATH wins over the bundled default)."""
    env_path = os.getenv("CONFIG_PATH", None)

    if config_path is None:
        config_path = env_path or str(_package_root() / "config" / "config.yaml")

    path = Path(config_path)

    if not path.is_absolute():
        path = Path.cwd() / path
    if not path.exists():
        raise FileNotFoundError(f"Config file not found at {path}")
    with open(path, "r", encoding="utf-8") as file:
        return yaml.safe_load(file) or {}


class ChunkingConfig(BaseModel):
    size: int = 2000
    overlap: int = 200

    @model_validator(mode="after")
    def _check_window(self):
        if self.size <= 0 or self.overlap < 0 or self.overlap >= self.size:
            raise ValueError(
                f"chunking requires size > 0 and 0 <= overlap < size (size={self.size}, overlap={self.overlap})"
            )
        return self


class RetrieverConfig(BaseModel):
    top_k: int = Field(5, gt=0)


class StorageConfig(BaseModel):
    backend: Literal["local", "redis"] = "local"
    root_dir: str = "storage"
    pdf_container: str = "pdfs"
    chunk_container: str = "chunks"
    history_container: str = "chathistory"
    history_extension: str = ".json"


class RedisConfig(BaseModel):
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    socket_timeout: float = 2.0


class FaissConfig(BaseModel):
    index_dir: str = "faiss_index"


class IndexerConfig(BaseModel):
    name: str = "case-chunks-indexer"


class PollerConfig(BaseModel):
    timeout_seconds: int = Field(300, gt=0)
    poll_interval_seconds: int = Field(5, gt=0)


class ChatConfig(BaseModel):
    serialize_sessions: bool = False
    request_timeout_seconds: Optional[float] = None
    render_html: bool = True
    session_lock_ttl_seconds: int = 3600
    fallback_answer: str = DEFAULT_FALLBACK_ANSWER


class EmbeddingConfig(BaseModel):
    provider: Literal["google"] = "google"
    model_name: str = "models/text-embedding-004"


class LLMRoleConfig(BaseModel):
    provider: Literal["groq", "google"] = "groq"
    model_name: str
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


class DatabaseConfig(BaseModel):
    url: str = "sqlite+aiosqlite:///./case_chat.db"


class AppConfig(BaseModel):
    """Validated application configuration, passed explicitly to every component."""

    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    retriever: RetrieverConfig = Field(default_factory=RetrieverConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    redis: RedisConfig = Field(default_factory=RedisConfig)
    faiss: FaissConfig = Field(default_factory=FaissConfig)
    indexer: IndexerConfig = Field(default_factory=IndexerConfig)
    poller: PollerConfig = Field(default_factory=PollerConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)
    embedding_model: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    llm: dict[str, LLMRoleConfig] = Field(default_factory=dict)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    system_prompt: str = DEFAULT_SYSTEM_PROMPT


def _apply_env_overrides(raw: dict) -> dict:
    redis_cfg = raw.setdefault("redis", {})
    if host := os.getenv("REDIS_HOST"):
        redis_cfg["host"] = host
    if port := os.getenv("REDIS_PORT"):
        redis_cfg["port"] = port
    if db := os.getenv("REDIS_DB"):
        redis_cfg["db"] = db

    if url := os.getenv("DATABASE_URL"):
        raw.setdefault("database", {})["url"] = url

    if root := os.getenv("STORAGE_ROOT"):
        raw.setdefault("storage", {})["root_dir"] = root

    return raw


def load_app_config(config_path: str | None = None) -> AppConfig:
    """Load YAML + environment overrides and validate them into an AppConfig."""
    load_dotenv()
    raw = _apply_env_overrides(load_config(config_path))
    try:
        return AppConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}", e) from e
