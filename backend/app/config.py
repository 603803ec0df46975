"""Crew scheduler configuration: settings loaded from the environment."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite:///data/scheduler.db"

    # CORS (comma-separated origins)
    cors_origins: str = "http://localhost:5173"

    # Tokens
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_ttl_seconds: int = 60 * 60 * 12  # 12 hours

    # Built-in admin credential (bypasses the user table at login)
    admin_username: str = "admin"
    admin_password: str = "admin123"
    admin_display_name: str = "Administrator"

    # Task status sweep
    status_sweep_enabled: bool = True
    status_sweep_interval_minutes: float = 2.0

    # Task write path
    allow_past_time_slots: bool = True  # False = reject slots starting before now

    # Rate limits (requests per minute per client)
    rate_limit_rpm: int = 120
    auth_rate_limit_rpm: int = 10

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
