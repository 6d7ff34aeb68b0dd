from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Campus Placement Portal"
    app_env: str = "development"
    app_host: str = "127.0.0.1"
    app_port: int = 5000
    log_level: str = "INFO"

    database_url: str = "sqlite:///./data/portal.db"
    data_dir: Path = Path("./data")
    resume_dir: Path = Path("./data/resumes")
    resume_public_base_url: str = "/resumes"
    resume_max_bytes: int = 5 * 1024 * 1024

    session_cookie_name: str = "portal_session"
    session_ttl_min: int = 1440
    session_cookie_secure: bool = False
    password_hash_rounds: int = 10

    transition_policy: Literal["permissive", "strict"] = "permissive"

    admin_email: str = ""
    admin_password: str = ""
    admin_name: str = "Placement Office"

    cors_origins: str = "http://127.0.0.1:5000"

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator("password_hash_rounds")
    @classmethod
    def validate_rounds(cls, value: int) -> int:
        # bcrypt only accepts cost factors in this range
        if value < 4 or value > 31:
            raise ValueError("password_hash_rounds must be between 4 and 31")
        return value

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
