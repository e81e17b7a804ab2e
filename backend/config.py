"""
Runtime Configuration for the document chat backend.

Provides a singleton RuntimeConfig class whose values default from the
environment and can be adjusted at runtime (tests substitute fixtures
through ``update()`` or by constructing their own instance).

Usage:
    from config import runtime_config
    budget = runtime_config.excerpt_budget
    runtime_config.update(context_strategy="full")
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Dict, Any
from threading import Lock
from urllib.parse import quote_plus

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"

DEFAULT_DOCUMENT_URL = "https://www.itca.edu.sv/wp-content/uploads/2024/10/GuiaEstudiantil2025_compressed.pdf"

CONTEXT_STRATEGIES = ("excerpt", "full", "chunked")
CACHE_BACKENDS = ("redis", "memory")

# Fields never echoed back by to_dict(mask_secrets=True)
_SECRET_FIELDS = {"completion_api_key", "database_url", "redis_url"}


def _first_env(*keys: str, default: str) -> str:
    """Return the first non-empty environment value from keys, else default."""
    for key in keys:
        value = os.environ.get(key, "").strip()
        if value:
            return value
    return default


def _build_database_url_default() -> str:
    """
    Build a PostgreSQL URL from env vars when DATABASE_URL is not explicitly set.

    Password is URL-encoded to avoid auth breakage with special characters.
    """
    explicit = os.environ.get("DATABASE_URL", "").strip()
    if explicit:
        return explicit

    user = os.environ.get("POSTGRES_USER", "docchat").strip() or "docchat"
    password = os.environ.get("POSTGRES_PASSWORD", "docchat-local-dev")
    host = os.environ.get("POSTGRES_HOST", "localhost").strip() or "localhost"
    port = os.environ.get("POSTGRES_PORT", "5432").strip() or "5432"
    db = os.environ.get("POSTGRES_DB", "docchat").strip() or "docchat"

    safe_password = quote_plus(password)
    return f"postgresql://{user}:{safe_password}@{host}:{port}/{db}"


def _mask(value: str) -> str:
    if not value:
        return ""
    return value[:4] + "***" if len(value) > 8 else "***"


@dataclass
class RuntimeConfig:
    """
    Singleton configuration for runtime-adjustable parameters.

    All values have defaults from environment variables, but can be
    changed at runtime via the update() method.
    """

    # Source document
    document_url: str = field(
        default_factory=lambda: _first_env("DOCUMENT_URL", "INFO_CHAT_DOCUMENT", default=DEFAULT_DOCUMENT_URL)
    )
    document_title: str = field(
        default_factory=lambda: os.environ.get("DOCUMENT_TITLE", "Guía Estudiantil ITCA-FEPADE 2025")
    )
    institution_name: str = field(
        default_factory=lambda: os.environ.get("INSTITUTION_NAME", "ITCA-FEPADE")
    )
    document_fetch_timeout: float = field(
        default_factory=lambda: float(os.environ.get("DOCUMENT_FETCH_TIMEOUT", "30"))
    )
    context_ttl_seconds: int = field(
        default_factory=lambda: int(os.environ.get("CONTEXT_TTL_SECONDS", "7200"))
    )  # Fixed from creation, never refreshed on read

    # Completion backend (OpenAI-compatible chat completions)
    completion_api_key: str = field(
        default_factory=lambda: _first_env("DEEPSEEK_API_KEY", "COMPLETION_API_KEY", default="")
    )
    completion_base_url: str = field(
        default_factory=lambda: _first_env(
            "DEEPSEEK_BASE_URL", "COMPLETION_BASE_URL", default="https://api.deepseek.com/v1"
        ).rstrip("/")
    )
    completion_model: str = field(
        default_factory=lambda: _first_env("DEEPSEEK_MODEL", "COMPLETION_MODEL", default="deepseek-chat")
    )
    completion_temperature: float = field(
        default_factory=lambda: float(os.environ.get("LLM_TEMPERATURE", "0.3"))
    )
    completion_max_tokens: int = field(
        default_factory=lambda: int(os.environ.get("LLM_MAX_TOKENS", "1500"))
    )
    full_document_timeout: float = field(
        default_factory=lambda: float(os.environ.get("LLM_FULL_TIMEOUT", "90"))
    )
    excerpt_timeout: float = field(
        default_factory=lambda: float(os.environ.get("LLM_EXCERPT_TIMEOUT", "60"))
    )  # Also used per chunk in chunked mode

    # Context narrowing
    context_strategy: str = field(
        default_factory=lambda: os.environ.get("CONTEXT_STRATEGY", "excerpt").strip().lower() or "excerpt"
    )
    excerpt_budget: int = field(
        default_factory=lambda: int(os.environ.get("EXCERPT_BUDGET_CHARS", "30000"))
    )
    chunk_size: int = field(
        default_factory=lambda: int(os.environ.get("CHUNK_SIZE_CHARS", "12000"))
    )
    max_chunks: int = field(
        default_factory=lambda: int(os.environ.get("MAX_CHUNKS", "10"))
    )

    # Context cache
    cache_backend: str = field(
        default_factory=lambda: os.environ.get("CACHE_BACKEND", "redis").strip().lower() or "redis"
    )
    redis_url: str = field(
        default_factory=lambda: os.environ.get("REDIS_URL", "redis://localhost:6379/0")
    )

    # Interaction log (PostgreSQL)
    database_url: str = field(default_factory=_build_database_url_default)
    interaction_log_enabled: bool = field(
        default_factory=lambda: os.environ.get("INTERACTION_LOG_ENABLED", "true").lower() == "true"
    )
    database_pool_size: int = field(
        default_factory=lambda: int(os.environ.get("DATABASE_POOL_SIZE", "5"))
    )

    # Environment
    app_env: str = field(
        default_factory=lambda: _first_env("APP_ENV", "ENVIRONMENT", default="development").lower()
    )

    # Internal state
    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)
    _update_count: int = field(default=0, repr=False)

    @property
    def is_production(self) -> bool:
        """Debug endpoints and debug payloads are disabled in production."""
        return self.app_env in {"prod", "production"}

    @property
    def redis_enabled(self) -> bool:
        return self.cache_backend == "redis"

    # Validation ranges for numeric config values
    _VALIDATION_RANGES: Dict[str, tuple] = field(default_factory=lambda: {
        "completion_temperature": (0.0, 2.0),
        "completion_max_tokens": (64, 32768),
        "document_fetch_timeout": (1.0, 300.0),
        "full_document_timeout": (1.0, 600.0),
        "excerpt_timeout": (1.0, 600.0),
        "excerpt_budget": (500, 500000),
        "chunk_size": (500, 200000),
        "max_chunks": (1, 100),
        "context_ttl_seconds": (60, 604800),
    }, repr=False, compare=False)

    def update(self, **kwargs) -> Dict[str, Any]:
        """
        Update configuration values at runtime.

        Args:
            **kwargs: Key-value pairs to update (e.g., excerpt_budget=20000)

        Returns:
            Dict with 'updated' (changed keys) and 'ignored' (unknown or invalid keys)
        """
        updated = []
        ignored = []

        with self._lock:
            for key, value in kwargs.items():
                if key.startswith("_") or not hasattr(self, key) or isinstance(
                    getattr(type(self), key, None), property
                ):
                    ignored.append(key)
                    logger.warning(f"Config ignored unknown key: {key}")
                    continue

                if key == "context_strategy" and value not in CONTEXT_STRATEGIES:
                    ignored.append(key)
                    logger.warning(f"Config rejected {key}={value!r} (must be one of {CONTEXT_STRATEGIES})")
                    continue

                if key == "cache_backend" and value not in CACHE_BACKENDS:
                    ignored.append(key)
                    logger.warning(f"Config rejected {key}={value!r} (must be one of {CACHE_BACKENDS})")
                    continue

                if key in {"document_url", "completion_base_url"} and isinstance(value, str):
                    cleaned = value.strip()
                    if not cleaned.startswith(("http://", "https://")):
                        ignored.append(key)
                        logger.warning(f"Config rejected invalid URL: {key}={value!r}")
                        continue
                    value = cleaned.rstrip("/") if key == "completion_base_url" else cleaned

                # Validate numeric ranges
                if key in self._VALIDATION_RANGES:
                    lo, hi = self._VALIDATION_RANGES[key]
                    if not (lo <= value <= hi):
                        ignored.append(key)
                        logger.warning(f"Config rejected {key}={value} (must be {lo}-{hi})")
                        continue

                old_value = getattr(self, key)
                setattr(self, key, value)
                updated.append(key)
                if key in _SECRET_FIELDS:
                    logger.info(f"Config updated: {key}")
                else:
                    logger.info(f"Config updated: {key} = {value} (was {old_value})")

            self._update_count += 1

        return {"updated": updated, "ignored": ignored, "update_count": self._update_count}

    def completion_timeout(self, strategy: str) -> float:
        """Full-document prompts get the long timeout, everything else the short one."""
        if strategy == "full":
            return self.full_document_timeout
        return self.excerpt_timeout

    def to_dict(self, mask_secrets: bool = True) -> Dict[str, Any]:
        """Export current config as dict (excludes internal fields)."""
        from dataclasses import fields as dataclass_fields

        result = {}
        for field_info in dataclass_fields(self):
            if field_info.name.startswith("_"):
                continue
            value = getattr(self, field_info.name)
            if mask_secrets and field_info.name in _SECRET_FIELDS:
                value = _mask(value)
            result[field_info.name] = value
        return result


# Singleton instance
runtime_config = RuntimeConfig()


def get_config() -> RuntimeConfig:
    """Get the singleton config instance."""
    return runtime_config
