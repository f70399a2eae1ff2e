"""
Paper Search Configuration Management Module

Provides type-safe configuration management using pydantic-settings.
Supports loading configuration from environment variables and .env files.

Usage:
    from config.settings import settings
    print(settings.data_dir)
    print(settings.search.fuzzy_threshold)
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root directory
PROJECT_ROOT = Path(__file__).resolve().parent.parent


class SearchSettings(BaseSettings):
    """Search, suggestion and ranking configuration"""

    model_config = SettingsConfigDict(
        env_prefix="PAPER_SEARCH_SEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Similarity
    prefix_bonus: float = Field(default=0.08, description="Bonus when a candidate extends the query")

    # Relevance engine
    fuzzy_enabled: bool = Field(default=True, description="Enable fuzzy scoring in the relevance engine")
    fuzzy_threshold: float = Field(default=0.72, description="Minimum fuzzy score for inclusion")
    token_threshold: float = Field(default=0.68, description="Per-token similarity counted as covered")
    fuzzy_weight: float = Field(default=0.7, description="Weight of the fuzzy score in multi-token queries")
    coverage_weight: float = Field(default=0.3, description="Weight of token coverage in multi-token queries")

    # Suggestions / autocorrect
    suggestion_limit: int = Field(default=8, description="Typeahead suggestions returned")
    suggest_threshold: float = Field(default=0.55, description="Minimum fuzzy score for a suggestion")
    autocorrect_threshold: float = Field(default=0.70, description="Minimum similarity to substitute a word")
    did_you_mean_limit: int = Field(default=5, description="Did-you-mean candidates shown on zero results")

    # Related phrases
    phrase_limit: int = Field(default=6, description="Related phrases returned")
    phrase_top_records: int = Field(default=60, description="Top-ranked records mined for phrases")
    phrase_min_chars: int = Field(default=12, description="Shortest snippet considered")
    phrase_threshold: float = Field(default=0.42, description="Minimum phrase score")
    phrase_dedup_jaccard: float = Field(default=0.8, description="Token overlap treated as a near duplicate")
    phrase_jaccard_weight: float = Field(default=0.45, description="Weight of token Jaccard in phrase score")
    phrase_token_weight: float = Field(default=0.35, description="Weight of mean best token similarity")
    phrase_string_weight: float = Field(default=0.20, description="Weight of whole-string similarity")

    # Paging / caller boundary
    per_page: int = Field(default=5, description="Results per page")
    max_per_page: int = Field(default=100, description="Upper bound on per_page requests")
    debounce_ms: int = Field(default=200, description="Typeahead debounce window (milliseconds)")
    cache_ttl: float = Field(default=120.0, description="Search result cache TTL (seconds)")
    cache_size: int = Field(default=256, description="Search result cache entries")

    @model_validator(mode="after")
    def check_weights(self) -> SearchSettings:
        """Blend weights must be non-negative"""
        for name in (
            "fuzzy_weight",
            "coverage_weight",
            "phrase_jaccard_weight",
            "phrase_token_weight",
            "phrase_string_weight",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")
        return self


class StoreSettings(BaseSettings):
    """Document store configuration"""

    model_config = SettingsConfigDict(
        env_prefix="PAPER_SEARCH_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    filename: str = Field(default="papers.db", description="SQLite file name inside data_dir")
    timeout: int = Field(default=30, description="SQLite connection timeout (seconds)")
    max_retries: int = Field(default=5, description="Database operation max retries")
    retry_base_sleep: float = Field(default=0.2, description="Retry base sleep time (seconds)")
    load_workers: int = Field(default=3, description="Concurrent snapshot reads")


class WebSettings(BaseSettings):
    """Web application configuration"""

    model_config = SettingsConfigDict(
        env_prefix="PAPER_SEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    access_log: bool = Field(default=False, description="Enable access logging")
    secret_key: str = Field(default="", description="Flask session secret key")
    max_content_length: int = Field(default=1048576, description="Max request body size (bytes)")
    enable_swagger: bool = Field(default=False, description="Serve Swagger UI at /apidocs/ (needs flasgger)")


class SentrySettings(BaseSettings):
    """Sentry error reporting configuration"""

    model_config = SettingsConfigDict(
        env_prefix="PAPER_SEARCH_SENTRY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    enabled: bool = Field(default=False, description="Enable Sentry")
    dsn: str = Field(
        default="",
        description="Sentry DSN",
        validation_alias=AliasChoices("PAPER_SEARCH_SENTRY_DSN", "SENTRY_DSN"),
    )
    environment: str = Field(default="", description="Sentry environment name")
    traces_sample_rate: float = Field(default=0.0, description="Tracing sample rate")


class Settings(BaseSettings):
    """Main configuration class"""

    model_config = SettingsConfigDict(
        env_prefix="PAPER_SEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Data directories
    data_dir: Path = PROJECT_ROOT / "data"

    # Service configuration
    host: str = "127.0.0.1"
    serve_port: int = 5000

    # Log configuration
    log_level: str = "WARNING"
    log_format: str = "text"

    # Nested sections are built per Settings instance so reload_settings() re-reads the environment
    search: SearchSettings = Field(default_factory=SearchSettings)
    db: StoreSettings = Field(default_factory=StoreSettings)
    web: WebSettings = Field(default_factory=WebSettings)
    sentry: SentrySettings = Field(default_factory=SentrySettings)

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db.filename

    @field_validator("data_dir", mode="before")
    @classmethod
    def resolve_path(cls, v):
        """Resolve path"""
        if v is None:
            return v
        if isinstance(v, str):
            return Path(v)
        return v

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, v: str) -> str:
        level = (v or "").strip().upper()
        if level not in ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level


@lru_cache
def get_settings() -> Settings:
    """Get settings singleton (with cache)"""
    return Settings()


# Global settings instance - explicit type annotation ensures IDE correctly infers type
settings: Settings = get_settings()


def reload_settings() -> Settings:
    """Reload settings (clear cache)"""
    get_settings.cache_clear()
    # Note: this does not update module-level settings variable, caller should use return value
    # To update global settings, use config package's reload_settings
    return get_settings()
