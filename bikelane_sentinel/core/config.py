from functools import lru_cache
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings class. Reads environment variables first, then .env file.

    Field names are upper-case so they line up one-to-one with the environment
    variables (e.g., MOONDREAM_API_KEY, MAX_FILE_SIZE).
    """

    # --- Project Metadata ---
    PROJECT_NAME: str = "Bike Lane Sentinel API"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"

    # --- Server ---
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"

    # --- Inference Service (Moondream) ---
    # No default: the process must refuse to start without a key.
    MOONDREAM_API_KEY: str = Field(..., min_length=1)
    MOONDREAM_API_URL: str = "https://api.moondream.ai/v1"
    INFERENCE_TIMEOUT_SECONDS: float = 30.0
    # 'extended' asks for the vehicle type as well, 'simple' is a bare yes/no
    PROMPT_MODE: Literal["extended", "simple"] = "extended"

    # --- Uploads ---
    MAX_FILE_SIZE: int = 10 * 1024 * 1024

    # --- Rate Limiting ---
    RATE_LIMIT_WINDOW_MS: int = 15 * 60 * 1000
    RATE_LIMIT_MAX_REQUESTS: int = 100

    # --- Upstream Traffic Cameras ---
    CAMERA_CATALOG_URL: str = "https://webcams.nyctmc.org/api/cameras"
    CAMERA_TIMEOUT_SECONDS: float = 5.0
    CAMERA_CACHE_TTL_SECONDS: float = 60.0

    # --- CORS ---
    CORS_ORIGINS: str = "*"

    # --- Demo Data ---
    SEED_DEMO_VIOLATIONS: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse comma-separated origins into a list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def max_file_size_mb(self) -> int:
        return self.MAX_FILE_SIZE // (1024 * 1024)

    @property
    def rate_limit_window_seconds(self) -> float:
        return self.RATE_LIMIT_WINDOW_MS / 1000


@lru_cache()
def get_settings() -> Settings:
    """
    Returns a cached instance of the Settings object.
    Called by the application factory at startup, never at import time.
    """
    return Settings()
