import json
import os
import secrets

from pathlib import Path
from typing import Any, Optional

from pydantic import PostgresDsn, field_validator
from pydantic.fields import FieldInfo, computed_field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


class JsonConfigSettingsSource(PydanticBaseSettingsSource):
    """Reads settings from the JSON file named by ``POLLS_CONFIG_FILE``."""

    def _load(self) -> dict[str, Any]:
        config_file = os.getenv("POLLS_CONFIG_FILE")
        if not config_file:
            return {}
        path = Path(config_file)
        if not path.is_file():
            return {}
        return json.loads(path.read_text(encoding="utf-8"))

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        field_value = self._json_data.get(field_name)
        return field_value, field_name, False

    def prepare_field_value(self, field_name: str, field: FieldInfo, value: Any, value_is_complex: bool) -> Any:  # noqa: ANN401
        return value

    def __call__(self) -> dict[str, Any]:  # noqa: D102
        self._json_data = self._load()
        d: dict[str, Any] = {}

        for field_name, field in self.settings_cls.model_fields.items():
            field_value, field_key, value_is_complex = self.get_field_value(field, field_name)
            field_value = self.prepare_field_value(field_name, field, field_value, value_is_complex)
            if field_value is not None:
                d[field_key] = field_value

        return d


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file="local.env",
        case_sensitive=True,
        extra="allow",
        env_ignore_empty=True,
    )

    PROJECT_NAME: str = "PollShare API"
    SECRET_KEY: str = secrets.token_urlsafe(32)
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 8
    SERVER_ADDRESS: str = "0.0.0.0"
    SERVER_PORT: int = int(os.getenv("PORT", 8000))
    BACKEND_CORS_ORIGINS: list[str] = []
    # Only enable behind a reverse proxy that overwrites X-Forwarded-For
    TRUST_PROXY_HEADERS: bool = False

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Any) -> list[str]:
        if isinstance(v, str):
            if v.startswith("["):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    raise ValueError(v) from None
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # Public base URL of the web front end, used for share links and previews
    APP_BASE_URL: str = "http://localhost:3000"
    SITE_NAME: str = "Polling App"

    DATABASE_URL: Optional[str] = None
    POSTGRES_SERVER: Optional[str] = None
    POSTGRES_USER: Optional[str] = None
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_DB: Optional[str] = None
    POSTGRES_POOL_SIZE: int = 50
    POSTGRES_MAX_OVERFLOW: int = 0
    SQLITE_FALLBACK_URL: str = "sqlite+aiosqlite:///./polls.db"

    @computed_field
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        if self.DATABASE_URL:
            db_url = self.DATABASE_URL
            # Hosted providers hand out plain postgresql:// URLs
            if db_url.startswith("postgresql://"):
                db_url = db_url.replace("postgresql://", "postgresql+psycopg://", 1)
            return db_url

        if not all([self.POSTGRES_USER, self.POSTGRES_PASSWORD, self.POSTGRES_SERVER, self.POSTGRES_DB]):
            return self.SQLITE_FALLBACK_URL

        return str(
            PostgresDsn.build(
                scheme="postgresql+psycopg",
                username=self.POSTGRES_USER,
                password=self.POSTGRES_PASSWORD,
                host=self.POSTGRES_SERVER,
                path=f"{self.POSTGRES_DB or ''}",
            )
        )

    # Polls
    MAX_POLL_OPTIONS: int = 10
    MAX_COMMENT_LENGTH: int = 1000

    # Voting rate limit, used when the database procedure is unavailable
    VOTE_RATE_LIMIT_PROCEDURE: Optional[str] = "check_vote_rate_limit"
    VOTE_RATE_LIMIT_MAX_VOTES: int = 10
    VOTE_RATE_LIMIT_WINDOW_SECONDS: int = 60

    # Share codes
    SHARE_CODE_LENGTH: int = 8
    SHARE_CODE_MAX_ATTEMPTS: int = 10
    SHARE_RATE_LIMIT_PER_HOUR: int = 10

    FIRST_ADMIN_NAME: str = "Admin"
    FIRST_ADMIN_EMAIL: Optional[str] = None
    FIRST_ADMIN_PASSWORD: Optional[str] = None

    WATCH_FILES: bool = False
    LOG_LEVEL: str = "info"  # critical, error, warning, info, debug, trace

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, env_settings, JsonConfigSettingsSource(settings_cls), dotenv_settings


settings = Settings()
