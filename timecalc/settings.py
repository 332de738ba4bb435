from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from timecalc.models import ClosedMonthPolicy
from timecalc.schemas import EngineConfig


class Settings(BaseSettings):
    log_level: str = "INFO"
    log_json: bool = True
    closed_month_policy: ClosedMonthPolicy = ClosedMonthPolicy.SKIP
    count_trip_as_work: bool = True

    model_config = SettingsConfigDict(
        env_prefix="TIMECALC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()


def build_engine_config(settings: Settings | None = None) -> EngineConfig:
    resolved = settings or get_settings()
    return EngineConfig(
        closed_month_policy=resolved.closed_month_policy,
        count_trip_as_work=resolved.count_trip_as_work,
    )
