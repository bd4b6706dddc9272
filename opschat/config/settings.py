# opschat/config/settings.py
from urllib.parse import quote_plus

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # PostgreSQL
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "opschat"
    db_user: str = "opschat"
    db_password: str = ""
    db_ssl: bool = False

    # DATABASE_URL wins over the db_* fields when set
    database_url_override: str | None = Field(
        default=None, validation_alias=AliasChoices("DATABASE_URL", "DATABASE_URL_OVERRIDE")
    )

    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    app_prefix: str = "/apps/ops-chat"

    jwt_secret: str = "dev-secret-change-me"
    jwt_issuer: str = "ops-chat-api"
    jwt_audience: str = "ops-chat-front"
    jwt_access_minutes: int = 60

    # a user counts as online while last_seen_at is at most this old
    presence_window_seconds: int = 120

    socketio_async_mode: str = "eventlet"

    cors_origins_raw: str = "http://localhost:3000,http://127.0.0.1:3000"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("db_host", "db_name", "db_user", "db_password", mode="before")
    @classmethod
    def strip_strings(cls, v):
        if isinstance(v, str):
            return v.strip().strip('"').strip("'")
        return v

    @field_validator("database_url_override", mode="before")
    @classmethod
    def read_database_url(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override

        user = quote_plus(self.db_user)
        password = quote_plus(self.db_password)
        url = f"postgresql+psycopg2://{user}:{password}@{self.db_host}:{self.db_port}/{self.db_name}"
        if self.db_ssl:
            url += "?sslmode=require"
        return url

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins_raw.split(",") if o.strip()]

    @property
    def api_prefix(self) -> str:
        return f"{self.app_prefix.rstrip('/')}/api"

    @property
    def socket_prefix(self) -> str:
        return f"{self.app_prefix.rstrip('/')}/socket.io"


settings = Settings()
