"""Settings for the chat server with observability configuration."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_field(default, *env_names: str):
    if env_names:
        alias = AliasChoices(*env_names) if len(env_names) > 1 else env_names[0]
        return Field(default=default, validation_alias=alias)
    return Field(default=default)


class Settings(BaseSettings):
    environment: str = _env_field("production", "ENV", "APP_ENV", "ENVIRONMENT")
    service_name: str = _env_field("chat-server", "SERVICE_NAME")
    git_commit: str = _env_field("unknown", "GIT_COMMIT", "COMMIT_SHA", "SOURCE_VERSION")
    host: str = _env_field("0.0.0.0", "HOST")
    port: int = _env_field(3000, "PORT")
    cors_allow_origins: Any = _env_field(("*",), "CORS_ALLOW_ORIGINS")

    # Socket.IO transport
    chat_namespace: str = _env_field("/chat", "CHAT_NAMESPACE")
    # When false, rejected client events are dropped without a chat:error reply
    chat_error_replies: bool = _env_field(True, "CHAT_ERROR_REPLIES")
    # 0 derives the Engine.IO packet ceiling from the upload limit
    max_http_buffer_size: int = _env_field(0, "MAX_HTTP_BUFFER_SIZE")

    # Attachment storage
    upload_enabled: bool = _env_field(True, "UPLOAD_ENABLED")
    upload_dir: str = _env_field("uploads", "UPLOAD_DIR")
    upload_max_bytes: int = _env_field(10 * 1024 * 1024, "UPLOAD_MAX_BYTES")
    upload_url_prefix: str = _env_field("/uploads", "UPLOAD_URL_PREFIX")
    static_dir: str = _env_field("public", "STATIC_DIR")

    obs_enabled: bool = _env_field(True, "OBS_ENABLED")
    obs_metrics_public: bool = _env_field(False, "OBS_METRICS_PUBLIC")
    obs_log_level: str = _env_field("INFO", "LOG_LEVEL")
    obs_log_sampling_rate_info: float = _env_field(1.0, "LOG_SAMPLING_RATE_INFO")
    obs_admin_token: Optional[str] = _env_field(None, "OBS_ADMIN_TOKEN")

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("cors_allow_origins", mode="before")
    def _split_cors(cls, value):  # type: ignore[override]
        if value in (None, ""):
            return ()
        if isinstance(value, str):
            return tuple(part.strip() for part in value.split(",") if part.strip())
        if isinstance(value, (list, tuple, set)):
            return tuple(str(item).strip() for item in value if str(item).strip())
        return ()

    @field_validator("obs_log_level", mode="after")
    def _normalise_level(cls, value: str) -> str:  # type: ignore[override]
        return value.upper()


settings = Settings()

