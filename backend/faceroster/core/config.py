"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "FaceRoster Identity Backend"
    debug: bool = False
    api_version: str = "v1"

    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""  # anon key for client operations
    supabase_service_key: str = ""  # service role key for admin operations

    # Name of the Postgres function that applies a write batch in one transaction
    supabase_batch_rpc: str = "apply_write_batch"

    # Gemini Configuration
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"

    # Merge Suggestions (advisory, never blocking)
    merge_suggestion_timeout: float = 45.0      # Hard timeout for the whole Gemini call (seconds)
    merge_suggestion_max_people: int = 200      # People sent per suggestion request
    merge_suggestion_include_images: bool = True  # Send inline face crops when available

    # Similarity heuristics
    similarity_high_name_threshold: float = 0.9
    similarity_medium_name_threshold: float = 0.7

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:9002"]

    @property
    def is_configured(self) -> bool:
        """Supabase URL plus either the anon or the service role key."""
        return bool(self.supabase_url and (self.supabase_key or self.supabase_service_key))

    @property
    def is_gemini_configured(self) -> bool:
        """Check if Gemini API is configured for merge suggestions."""
        return bool(self.gemini_api_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
