"""Configuration management for the support agent service."""

from functools import lru_cache
from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings, read from the environment and an optional ``.env``."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
        protected_namespaces=("settings_",),
    )

    # Service
    service_name: str = Field(default="support-agent", validation_alias=AliasChoices("SERVICE_NAME", "service_name"))
    log_level: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL", "log_level"))
    log_format: str = Field(default="json", validation_alias=AliasChoices("LOG_FORMAT", "log_format"))
    host: str = Field(default="0.0.0.0", validation_alias=AliasChoices("HOST", "host"))
    port: int = Field(default=8000, ge=1, le=65535, validation_alias=AliasChoices("PORT", "port"))
    cors_origins: str = Field(
        default="*",
        description="Comma-separated allowed origins",
        validation_alias=AliasChoices("CORS_ALLOW_ORIGINS", "cors_origins"),
    )

    # Orchestration
    max_steps: int = Field(default=10, ge=1, validation_alias=AliasChoices("AGENT_MAX_STEPS", "max_steps"))
    reasoner: str = Field(
        default="auto",
        pattern="^(auto|llm|rules)$",
        description="auto picks the chat model when an API key is present, rules otherwise",
        validation_alias=AliasChoices("AGENT_REASONER", "reasoner"),
    )
    tool_seed: Optional[int] = Field(default=None, validation_alias=AliasChoices("AGENT_TOOL_SEED", "tool_seed"))

    # Chat model
    together_api_key: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("TOGETHERAI_API_KEY", "together_api_key")
    )
    model_name: str = Field(
        default="meta-llama/Llama-3.3-70B-Instruct-Turbo",
        validation_alias=AliasChoices("TOGETHERAI_MODEL", "model_name"),
    )
    model_provider: str = Field(default="together", validation_alias=AliasChoices("AGENT_MODEL_PROVIDER", "model_provider"))
    temperature: float = Field(default=0.1, validation_alias=AliasChoices("AGENT_TEMPERATURE", "temperature"))
    model_timeout: float = Field(default=30, validation_alias=AliasChoices("AGENT_MODEL_TIMEOUT", "model_timeout"))
    model_max_retries: int = Field(
        default=1, ge=0, validation_alias=AliasChoices("AGENT_MODEL_MAX_RETRIES", "model_max_retries")
    )

    @property
    def cors_allow_origins(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def use_chat_model(self) -> bool:
        if self.reasoner == "llm":
            return True
        if self.reasoner == "rules":
            return False
        return bool(self.together_api_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings instance."""

    return Settings()
