"""
Core settings and environment variables for the Kavach Zone Engine.
Uses pydantic-settings for type-safe environment variable loading.
"""

from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Create a .env file in the root directory to configure these.
    """

    # Application
    APP_NAME: str = "Kavach Zone Engine"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - Frontend URLs allowed to access this API
    CORS_ORIGINS: str = "http://localhost:5000,http://localhost:5173,http://127.0.0.1:5173"

    # Firebase/Firestore
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None  # Path to service account JSON
    REPORTS_COLLECTION: str = "reports"
    ZONES_COLLECTION: str = "unsafe_zones"

    # In-process store for local development and tests (no Firebase needed)
    USE_MEMORY_STORE: bool = False

    # Zone aggregation
    # Merge and recompute thresholds differ (0.005 vs 0.01 degrees).
    ZONE_MERGE_THRESHOLD_DEGREES: float = 0.005
    ZONE_RECOMPUTE_THRESHOLD_DEGREES: float = 0.01
    ZONE_DISTANCE_MODE: str = "degree_delta"  # "degree_delta" or "haversine"
    ZONE_MERGE_RADIUS_METERS: float = 500.0  # haversine mode only
    ZONE_RECOMPUTE_RADIUS_METERS: float = 1000.0  # haversine mode only
    ZONE_MATCH_POLICY: str = "first_match"  # "first_match" or "nearest"
    DEFAULT_ZONE_RADIUS_METERS: int = 100

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


# Global settings instance
settings = Settings()
