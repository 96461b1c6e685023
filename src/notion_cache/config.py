import os
from dataclasses import dataclass
from functools import lru_cache

import redis.asyncio as redis
from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Redis
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    redis_password: str | None = os.getenv("REDIS_PASSWORD")

    # Cache store
    cache_backend: str = os.getenv("CACHE_BACKEND", "redis")  # "redis" or "memory"
    cache_namespace: str = os.getenv("CACHE_NAMESPACE", "notion_cache")

    # TTLs, in minutes
    default_cache_ttl: int = int(os.getenv("DEFAULT_CACHE_TTL", "30"))
    reference_collection_ttl: int = int(os.getenv("REFERENCE_COLLECTION_TTL", "120"))  # 2 hours
    reference_snapshot_ttl: int = int(os.getenv("REFERENCE_SNAPSHOT_TTL", "720"))  # 12 hours

    # Supabase edge functions
    supabase_url: str = os.getenv("SUPABASE_URL", "http://localhost:54321")
    supabase_anon_key: str | None = os.getenv("SUPABASE_ANON_KEY")

    # Remote calls
    remote_timeout: float = float(os.getenv("REMOTE_TIMEOUT", "30"))
    remote_max_retries: int = int(os.getenv("REMOTE_MAX_RETRIES", "5"))
    remote_retry_delay: float = float(os.getenv("REMOTE_RETRY_DELAY", "2.0"))
    remote_deadline: float = float(os.getenv("REMOTE_DEADLINE", "120"))  # whole call, retries included

    # API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_reload: bool = os.getenv("API_RELOAD", "true").lower() == "true"

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def uses_memory_backend(self) -> bool:
        """Check if the cache store is the in-process dict backend."""
        return self.cache_backend.lower() == "memory"

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.cache_backend.lower() not in ("redis", "memory"):
            raise ValueError(f"CACHE_BACKEND must be 'redis' or 'memory', got {self.cache_backend!r}")

        for name in ("default_cache_ttl", "reference_collection_ttl", "reference_snapshot_ttl"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name.upper()} must be a positive number of minutes")

        if self.remote_max_retries < 1:
            raise ValueError("REMOTE_MAX_RETRIES must be at least 1")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


def get_redis_client() -> redis.Redis:
    """Create an asyncio Redis client instance."""
    return redis.from_url(
        settings.redis_url,
        password=settings.redis_password,
        decode_responses=True,
    )
