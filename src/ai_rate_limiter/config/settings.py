"""Settings configuration"""
from typing import Optional
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Rate limiter settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", case_sensitive=False,
        validate_assignment=True, populate_by_name=True
    )

    # Application
    app_name: str = Field(default="AI Rate Limiter", validation_alias="APP_NAME")
    version: str = "1.0.0"
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")
    debug: bool = Field(default=False, validation_alias="DEBUG")

    # Logging
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_json: bool = Field(default=True, validation_alias="LOG_JSON")

    # Health checks
    health_check_interval: float = Field(
        default=30.0, validation_alias="HEALTH_CHECK_INTERVAL", gt=0
    )
    health_check_timeout: float = Field(
        default=10.0, validation_alias="HEALTH_CHECK_TIMEOUT", gt=0
    )
    failure_threshold: int = Field(default=5, validation_alias="FAILURE_THRESHOLD", ge=1)

    # Retries
    default_max_retries: int = Field(default=3, validation_alias="MAX_RETRIES", ge=1)
    no_provider_backoff_base_ms: int = Field(
        default=1000, validation_alias="NO_PROVIDER_BACKOFF_BASE_MS", ge=0
    )
    no_provider_backoff_max_ms: int = Field(
        default=30000, validation_alias="NO_PROVIDER_BACKOFF_MAX_MS", ge=0
    )

    # Monitoring
    enable_metrics: bool = Field(default=True, validation_alias="ENABLE_METRICS")

    # API Keys
    openai_api_key: Optional[SecretStr] = Field(default=None, validation_alias="OPENAI_API_KEY")
    anthropic_api_key: Optional[SecretStr] = Field(default=None, validation_alias="ANTHROPIC_API_KEY")
    moonshot_api_key: Optional[SecretStr] = Field(default=None, validation_alias="MOONSHOT_API_KEY")
    moonshot_base_url: str = Field(
        default="https://api.moonshot.cn/v1", validation_alias="MOONSHOT_BASE_URL"
    )

    # Model Defaults
    openai_model: str = Field(default="gpt-4o-mini", validation_alias="OPENAI_MODEL")
    anthropic_model: str = Field(
        default="claude-3-5-sonnet-20241022", validation_alias="ANTHROPIC_MODEL"
    )
    moonshot_model: str = Field(default="moonshot-v1-32k", validation_alias="MOONSHOT_MODEL")
    default_temperature: float = Field(default=0.7, validation_alias="DEFAULT_TEMPERATURE")
    default_max_tokens: int = Field(default=4000, validation_alias="DEFAULT_MAX_TOKENS")
    request_timeout: int = Field(default=60, validation_alias="REQUEST_TIMEOUT")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        if isinstance(v, str):
            return v.upper()
        return v

    # Properties
    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def has_openai_key(self) -> bool:
        return bool(self.openai_api_key)

    @property
    def has_anthropic_key(self) -> bool:
        return bool(self.anthropic_api_key)

    @property
    def has_moonshot_key(self) -> bool:
        return bool(self.moonshot_api_key)
