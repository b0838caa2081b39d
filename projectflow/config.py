"""全局配置加载模块：从环境变量构建运行参数并提供缓存访问。"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _csv_to_list(value: str) -> list[str]:
    """将逗号分隔字符串转换为去空白列表。"""
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """系统运行配置对象，从环境变量读取并提供类型化访问。"""
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "ProjectFlow"
    api_prefix: str = "/api"
    environment: str = "dev"
    cors_allowed_origins: str = "*"
    cors_allowed_methods: str = "GET,POST,PUT,PATCH,DELETE,OPTIONS"
    cors_allowed_headers: str = "Authorization,Content-Type,X-Request-Id"
    cors_allow_credentials: bool = False

    database_url: str = "sqlite:///./projectflow.db"
    redis_url: str = "redis://localhost:6379/0"
    celery_task_always_eager: bool = False

    jwt_secret: str = "change-me-projectflow-dev-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_days: int = 7
    bcrypt_rounds: int = 10

    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool = True
    smtp_from_email: str = "noreply@projectflow.local"
    smtp_from_name: str = "ProjectFlow"
    smtp_timeout_seconds: int = 30

    # 新任务预估工时取值区间（闭区间）。
    estimated_hours_min: int = 5
    estimated_hours_max: int = 24

    static_dir: Path = Field(default=Path(__file__).resolve().parent / "static")

    log_dir: Path = Field(default=Path("./logs"))
    log_level: str = "INFO"
    log_max_bytes: int = 20 * 1024 * 1024
    log_backup_count: int = 5
    log_redaction_mode: str = "standard"
    log_payload_preview_chars: int = 512
    log_debug_modules: str = ""
    log_debug_user_ids: str = ""

    def cors_allowed_origins_list(self) -> list[str]:
        return _csv_to_list(self.cors_allowed_origins)

    def cors_allowed_methods_list(self) -> list[str]:
        return _csv_to_list(self.cors_allowed_methods)

    def cors_allowed_headers_list(self) -> list[str]:
        return _csv_to_list(self.cors_allowed_headers)

    def log_debug_modules_list(self) -> list[str]:
        return _csv_to_list(self.log_debug_modules)

    def log_debug_user_ids_list(self) -> list[str]:
        return _csv_to_list(self.log_debug_user_ids)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """构建并缓存 Settings，并校验工时区间配置。"""
    settings = Settings()
    if settings.estimated_hours_min > settings.estimated_hours_max:
        raise ValueError(
            f"estimated_hours_min={settings.estimated_hours_min} exceeds "
            f"estimated_hours_max={settings.estimated_hours_max}"
        )
    return settings
