from pydantic import AnyUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Literal

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    SERVICE_PORT: int = 8080
    MAX_EVENT_SIZE: int = 65536
    LOG_JSON: bool = True
    # Blob store backend selection: "memory" or "redis"
    STORE_BACKEND: Literal["memory", "redis"] = "memory"
    REDIS_URL: AnyUrl | None = None
    REDIS_KEY_PREFIX: str = "clinicflow:"
    # Execution log retention (oldest evicted first)
    EXECUTION_RETENTION: int = Field(default=1000, ge=1000)
    # Delayed action scheduler
    SCHEDULER_POLL_SECONDS: float = 5.0
    # Timezone used for "executions today"
    STATS_TIMEZONE: str = "UTC"
    SEED_SAMPLE_RULES: bool = False

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
