from pydantic_settings import BaseSettings, SettingsConfigDict  # type: ignore[import-not-found]


class Settings(BaseSettings):
    app_env: str = "local"
    app_name: str = "fleetvmrs"

    mysql_host: str = "127.0.0.1"
    mysql_port: int = 3306
    mysql_user: str = "fleet_user"
    mysql_password: str = "fleet_pass"
    mysql_db: str = "fleet"

    redis_url: str = "redis://localhost:6379/0"

    gemini_model: str = "models/gemini-2.5-flash-lite"
    gemini_api_key: str | None = None

    # AI escalation for free-text suggestions
    vmrs_ai_enabled: bool = True
    vmrs_ai_temperature: float = 0.0
    vmrs_ai_max_tokens: int = 200
    vmrs_ai_timeout_sec: float = 8.0
    vmrs_ai_cache_enabled: bool = True
    vmrs_ai_cache_ttl_seconds: int = 60 * 60 * 24 * 7
    vmrs_ai_l1_cache_size: int = 256
    vmrs_ai_max_confidence: float = 0.95

    # Suggestion thresholds
    vmrs_ai_escalation_threshold: float = 0.85
    vmrs_confirmation_threshold: float = 0.80
    vmrs_high_confidence_threshold: float = 0.90
    vmrs_part_suggestion_limit: int = 3
    vmrs_text_suggestion_limit: int = 5
    vmrs_batch_default_limit: int = 100

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    @property
    def sqlalchemy_url(self) -> str:
        # Force TCP/IP connection by adding unix_socket= parameter
        return (
            f"mysql+pymysql://{self.mysql_user}:{self.mysql_password}"
            f"@{self.mysql_host}:{self.mysql_port}/{self.mysql_db}?charset=utf8mb4&unix_socket="
        )


settings = Settings()
