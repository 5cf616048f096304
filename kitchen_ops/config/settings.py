from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Used by reminder dispatch and admin operations

    # Evolution API (WhatsApp gateway)
    evolution_api_url: str = ""
    evolution_api_key: str = ""
    evolution_instance: str = ""
    evolution_timeout_seconds: float = 30.0

    # OpenAI (fallback when the ai_settings row has no key)
    openai_api_key: Optional[str] = None
    openai_default_model: str = "gpt-4o-mini"
    assistant_poll_interval_seconds: float = 1.0
    assistant_max_poll_attempts: int = 60
    assistant_max_file_size: int = 512 * 1024 * 1024

    # Reminders
    reminder_batch_size: int = 50
    reminder_scheduler_enabled: bool = False
    reminder_scheduler_interval_seconds: int = 300
    reminder_cron_secret: Optional[str] = None
    business_timezone: str = "America/Sao_Paulo"
    default_work_start: str = "08:00"
    default_work_end: str = "17:00"

    # Attachments
    project_files_bucket: str = "project-files"
    task_files_bucket: str = "task-files"
    max_file_size: int = 10 * 1024 * 1024
    allowed_file_types: str = (
        "image/jpeg,image/png,image/gif,application/pdf,application/msword,"
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document,"
        "application/vnd.ms-excel,"
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )

    # AWS S3 (optional attachment storage, will read from uppercase env vars automatically)
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = "us-east-1"
    s3_bucket_name: Optional[str] = None

    # App
    app_name: str = "kitchen-ops-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def s3_configured(self) -> bool:
        return all([self.aws_access_key_id, self.aws_secret_access_key, self.s3_bucket_name])

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def get_allowed_file_types(self) -> List[str]:
        return [t.strip() for t in self.allowed_file_types.split(",") if t.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
