"""Application configuration settings.

This module defines the application-wide settings using Pydantic's BaseSettings.
It allows for loading configurations from environment variables and .env files,
providing type validation and default values.
"""

from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings

# Default list of CORS allowed origins
DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:8000",
    "https://localhost:3000",
    "https://localhost:8000",
    "http://0.0.0.0:8000",
]


class Settings(BaseSettings):
    """Manages application settings, loading them from environment variables or an .env file.

    Attributes:
        openai_api_key: Credential for the generative completion API. Required before any
            document is generated; its absence aborts a session before the first call.
        openai_base_url: Optional base URL for OpenAI-compatible gateways.
        model_id: Identifier for the language model to be used.
        llm_temperature: Sampling temperature for every documentation request.
        llm_max_tokens: Response-length ceiling for every documentation request.
        generation_timeout: Wall-clock timeout in seconds for a single document.
        min_description_chars: Minimum length of a project description.
        max_tracked_clients: Upper bound of client sessions held by the session registry.
        log_level: Level of the ``autodocs`` loggers.
        cors_allowed_origins: List of allowed origins for CORS.
        LLM_CONNECT_TIMEOUT: LLM client connect timeout in seconds.
        LLM_READ_TIMEOUT: LLM client read timeout in seconds.
    """

    openai_api_key: str | None = Field(default=None)
    openai_base_url: str | None = Field(default=None)
    model_id: str = Field(default="gpt-4")
    llm_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    llm_max_tokens: int = Field(default=2500, gt=0)

    generation_timeout: float = Field(default=60.0, gt=0, description="Per-document wall-clock timeout in seconds.")
    min_description_chars: int = Field(default=10)
    max_tracked_clients: int = Field(default=256, gt=0, description="Client sessions kept in memory at once.")
    log_level: str = Field(default="INFO")

    cors_allowed_origins: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CORS_ORIGINS),
    )

    LLM_CONNECT_TIMEOUT: float = Field(default=10.0, description="LLM client connect timeout in seconds.")
    LLM_READ_TIMEOUT: float = Field(default=90.0, description="LLM client read timeout in seconds.")

    model_config = {
        "env_file": ".env",
        "protected_namespaces": ("settings_",),
        "env_prefix": "",  # No prefix for environment variables
        "extra": "ignore",
    }

    @field_validator("cors_allowed_origins", mode="before")  # type: ignore
    @classmethod
    def assemble_cors_origins(cls, v: str | list[str] | None) -> list[str]:
        """Assembles the list of CORS allowed origins.

        If 'v' is a string, it splits it by commas. If 'v' is already a list,
        it's used directly. Otherwise, returns the default list of origins.
        """
        if isinstance(v, str) and v:
            return [origin.strip() for origin in v.split(",")]
        elif isinstance(v, list):
            return v
        return list(DEFAULT_CORS_ORIGINS)


settings = Settings()
