"""Application configuration."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Literal


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./ledgerflow.db"

    # Application
    APP_ENV: str = "development"
    API_V1_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # Frontend
    FRONTEND_URL: str = "http://localhost:3000"

    # Data source: "database" reads and writes through SQLAlchemy,
    # "sample" serves the in-memory demo data set
    DATA_PROVIDER: Literal["database", "sample"] = "database"

    # Status matching
    FUZZY_NAME_MATCHING_ENABLED: bool = True

    # Synthetic budget categories
    BILLS_CATEGORY_NAME: str = "Bills"
    SUBSCRIPTIONS_CATEGORY_NAME: str = "Subscriptions"
    BILLS_CATEGORY_COLOR: str = "#ef4444"
    SUBSCRIPTIONS_CATEGORY_COLOR: str = "#8b5cf6"

    # CORS
    @property
    def ALLOWED_ORIGINS(self) -> List[str]:
        if self.APP_ENV == "development":
            return ["*"]  # Allow all origins in development
        return [self.FRONTEND_URL, "http://localhost:3000"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True
    )


settings = Settings()
