"""Configuration schema using Pydantic.

Why this exists:
- Type-safe configuration with validation
- Environment variable support (RAGCOURSE_* prefix)
- Activation profiles that switch ingestion and the vector backend
- Clear documentation of all settings

How to extend:
1. Add new fields to existing config classes
2. Create new config classes for new components
3. Document the new keys in config.example.toml
"""

from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EmbeddingProviderType(str, Enum):
    """Supported embedding providers."""

    OPENAI = "openai"


class ChatProviderType(str, Enum):
    """Supported chat providers."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class VectorBackend(str, Enum):
    """Vector store backends. Exactly one is wired in at startup."""

    IN_MEMORY = "in_memory"
    NETWORKED = "networked"


class SourceType(str, Enum):
    """Content types the knowledge base loader can read."""

    HTML = "html"
    PDF = "pdf"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = LogLevel.INFO
    json_logs: bool = False
    enable_file: bool = False
    log_dir: Optional[Path] = None
    max_days: int = Field(default=30, gt=0)

    def model_post_init(self, __context: Any) -> None:
        """Expand ~ in paths."""
        if self.log_dir:
            self.log_dir = self.log_dir.expanduser()


class EmbeddingConfig(BaseModel):
    """Embedding provider configuration.

    ``api_key`` may hold the key itself or the name of the environment
    variable that holds it.
    """

    provider: EmbeddingProviderType = EmbeddingProviderType.OPENAI
    model_name: str = "text-embedding-3-small"
    api_key: Optional[str] = "OPENAI_API_KEY"
    batch_size: int = Field(default=32, gt=0)
    extra_params: dict[str, Any] = Field(default_factory=dict)


class ChatConfig(BaseModel):
    """Chat provider configuration."""

    provider: ChatProviderType = ChatProviderType.OPENAI
    model_name: str = "gpt-4.1-mini"
    api_key: Optional[str] = None
    max_tokens: int = Field(default=1024, gt=0)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    extra_params: dict[str, Any] = Field(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        """Default the key variable to the one matching the provider."""
        if self.api_key is None:
            if self.provider == ChatProviderType.ANTHROPIC:
                self.api_key = "ANTHROPIC_API_KEY"
            else:
                self.api_key = "OPENAI_API_KEY"


class VectorStoreConfig(BaseModel):
    """Vector store configuration.

    ``host``/``port`` point the networked backend at a Chroma server. When no
    host is set but ``persist_directory`` is, the networked backend uses an
    embedded persistent client instead.
    """

    backend: VectorBackend = VectorBackend.IN_MEMORY
    collection_name: str = "ragcourse"
    host: Optional[str] = None
    port: int = Field(default=8000, gt=0)
    ssl: bool = False
    persist_directory: Optional[Path] = None
    extra_params: dict[str, Any] = Field(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        """Expand ~ in paths."""
        if self.persist_directory:
            self.persist_directory = self.persist_directory.expanduser()


class ChunkingConfig(BaseModel):
    """Token splitter configuration.

    Defaults:
    - chunk_size: 800 tokens per window
    - min_chunk_size_chars: a window is only cut back to the last sentence
      boundary when that boundary lies beyond this many characters
    - min_chunk_length_to_embed: shorter chunks are discarded
    - max_num_chunks: windows produced before the remainder becomes one chunk
    """

    chunk_size: int = Field(default=800, gt=0, description="Target chunk size in tokens")
    min_chunk_size_chars: int = Field(default=350, ge=0)
    min_chunk_length_to_embed: int = Field(default=5, ge=0)
    max_num_chunks: int = Field(default=10000, gt=0)
    keep_separator: bool = True
    encoding_name: str = "cl100k_base"


class SourceConfig(BaseModel):
    """A single knowledge base source."""

    source_id: str = Field(..., min_length=1, description="Identifier stamped on every chunk")
    location: str = Field(..., min_length=1, description="URL or filesystem path")
    doc_type: SourceType = SourceType.HTML


def _default_sources() -> list[SourceConfig]:
    return [
        SourceConfig(
            source_id="drake_feud",
            location="https://en.wikipedia.org/wiki/Drake%E2%80%93Kendrick_Lamar_feud",
            doc_type=SourceType.HTML,
        ),
        SourceConfig(
            source_id="spring_framework",
            location="https://en.wikipedia.org/wiki/Spring_Framework",
            doc_type=SourceType.HTML,
        ),
        SourceConfig(
            source_id="wef_jobs_report",
            location="resources/pdfs/WEF_Future_of_Jobs_Report_2025.pdf",
            doc_type=SourceType.PDF,
        ),
    ]


class KnowledgeBaseConfig(BaseModel):
    """Knowledge base ingestion configuration."""

    ingestion_enabled: bool = False
    probe_query: str = Field(default="Spring Framework", min_length=1)
    sources: list[SourceConfig] = Field(default_factory=_default_sources)


class RetrievalConfig(BaseModel):
    """Query-time retrieval configuration."""

    top_k: int = Field(default=4, gt=0)
    similarity_threshold: float = Field(default=0.0, ge=0.0, le=1.0)
    memory_window: int = Field(default=20, gt=0)


class AppConfig(BaseSettings):
    """Main application configuration.

    Loads from:
    1. Environment variables (prefixed with RAGCOURSE_, nested with __)
    2. Config file (TOML), passed in by the loader
    3. Defaults
    """

    model_config = SettingsConfigDict(
        env_prefix="RAGCOURSE_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    app_name: str = "ragcourse"
    active_profiles: list[str] = Field(default_factory=list)

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)
    vector_store: VectorStoreConfig = Field(default_factory=VectorStoreConfig)
    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    knowledge_base: KnowledgeBaseConfig = Field(default_factory=KnowledgeBaseConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)

    @field_validator("active_profiles")
    @classmethod
    def normalize_profiles(cls, v: list[str]) -> list[str]:
        seen: list[str] = []
        for name in v:
            name = name.strip().lower()
            if name and name not in seen:
                seen.append(name)
        return seen

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Environment wins over values handed in from the config file
        return env_settings, init_settings, dotenv_settings, file_secret_settings


class ConfigError(Exception):
    """Raised when configuration cannot be loaded or resolved."""

    def __init__(self, message: str, path: Optional[str] = None, original_error: Optional[Exception] = None):
        self.message = message
        self.path = path
        self.original_error = original_error
        super().__init__(self.message)
