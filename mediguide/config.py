import os
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_OVERPASS_ENDPOINTS = [
    "https://overpass-api.de/api/interpreter",
    "https://lz4.overpass-api.de/api/interpreter",
    "https://overpass.kumi.systems/api/interpreter",
]


class Settings(BaseSettings):
    """
    Server settings read from the environment and an optional .env file.
    Every remote-call tunable and in-memory lifetime lives here.
    """

    # --- Model Configuration ---
    assistant_model: str = Field(
        default="gemini-2.5-flash",
        description="LLM used for document analysis, OTC advice and chat",
    )

    # --- LLM Service Configuration ---
    llm_timeout: int = Field(
        default=30,
        description="Timeout in seconds for each LLM attempt",
        ge=5,
        le=120,
    )
    llm_max_attempts: int = Field(
        default=3,
        description="Maximum attempts for rate-limited LLM calls",
        ge=1,
        le=5,
    )
    llm_initial_delay: float = Field(
        default=2.0,
        description="First backoff delay in seconds (doubled on every retry)",
        ge=0,
        le=30,
    )
    remote_max_attempts: int = Field(
        default=3,
        description="Maximum attempts for rate-limited map lookups (Nominatim, Overpass)",
        ge=1,
        le=5,
    )
    remote_initial_delay: float = Field(
        default=2.0,
        description="First backoff delay in seconds for map lookups",
        ge=0,
        le=30,
    )
    llm_rate_limit: int = Field(
        default=3,
        description="Maximum concurrent LLM requests (rate limiting)",
        ge=1,
        le=10,
    )

    # --- In-memory state ---
    cache_ttl_seconds: float = Field(
        default=3600, description="Lifetime of cached lookups", gt=0
    )
    session_idle_seconds: float = Field(
        default=3600, description="Idle time after which chat sessions are swept", gt=0
    )
    sweep_interval_seconds: float = Field(
        default=3600, description="Interval of the background sweep task", gt=0
    )

    # --- Map data ---
    search_radius_km: float = Field(
        default=15.0, description="Maximum distance of ranked facilities", gt=0
    )
    overpass_radius_m: int = Field(
        default=12000, description="Radius used in the Overpass query", gt=0
    )
    overpass_endpoints: list[str] = Field(
        default_factory=lambda: list(DEFAULT_OVERPASS_ENDPOINTS),
        description="Overpass mirrors tried in order",
    )
    nominatim_url: str = Field(
        default="https://nominatim.openstreetmap.org/search",
        description="Free-text geocoding endpoint",
    )
    geocode_country_hint: str = Field(
        default="India",
        description="Country appended to free-text locations (empty disables)",
    )
    http_user_agent: str = Field(default="MediGuide/1.0")
    http_timeout: float = Field(default=20.0, ge=1, le=120)

    # --- Server ---
    log_level: str = Field(default="INFO")
    log_structured: bool = Field(default=True)
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # --- API Keys (Optional, features fall back without them) ---
    google_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GOOGLE_API_KEY", "GEMINI_API_KEY"),
        description="Google API key for Gemini",
    )
    openai_api_key: str | None = Field(default=None, description="OpenAI API key")

    model_config = SettingsConfigDict(
        env_file=os.getenv("DOTENV_PATH", ".env"),
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    def api_key_for(self, model_name: str) -> str | None:
        """Returns the provider key matching a model name."""
        return self.openai_api_key if "gpt" in model_name else self.google_api_key


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get or create settings instance.
    Singleton pattern for consistent configuration.

    Returns:
        Settings instance

    Raises:
        ValidationError: If env vars are invalid
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
