"""Runtime settings, overridable through BOOK_NORMALIZER_* variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    output_dir: str = "bookInfo"
    images_dir_suffix: str = "_images"
    max_workers: int = 4
    default_language: str = "zh-CN"
    log_level: str = "WARNING"

    model_config = SettingsConfigDict(
        env_prefix="BOOK_NORMALIZER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
