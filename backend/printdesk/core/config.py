# printdesk/core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, model_validator
from pathlib import Path
from loguru import logger
from typing import List, Union
import json
import sys


class Settings(BaseSettings):
    # --- Core App Settings ---
    APP_NAME: str = "PrintDesk Fulfillment Backend"
    API_V1_PREFIX: str = "/api/v1"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # --- CORS ---
    # Example: "http://localhost:3000,https://admin.example.com"
    ALLOWED_ORIGINS: Union[List[str], str] = Field(["*"], description="Allowed CORS origins. Use '*' for dev ONLY.")

    # --- Database (MongoDB) ---
    MONGODB_URI: str = Field("mongodb://localhost:27017/printdesk", description="MongoDB connection string (replica set required for transactions)")
    MONGO_DB_NAME: str | None = None  # Derived from URI if not set
    MONGO_SERVER_SELECTION_TIMEOUT_MS: int = 5000

    # --- Order Lifecycle ---
    DEFAULT_AGENT_COMMISSION_PERCENTAGE: int = Field(70, ge=0, le=100)
    MAX_BULK_ORDERS: int = Field(200, gt=0)
    ORDER_ID_PREFIX: str = "MP"
    DEFAULT_PAGE_SIZE: int = 50
    MAX_PAGE_SIZE: int = 200

    # --- Audit Log Settings ---
    AUDIT_LOG_ENABLED: bool = True
    AUDIT_LOG_MONGO_COLLECTION: str = "audit_logs"

    # --- Rate limiting (slowapi) ---
    RATE_LIMIT_DEFAULT: str = "300/minute"

    # --- Uvicorn (local dev) ---
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    RELOAD: bool = False

    model_config = SettingsConfigDict(
        env_file=str(Path.cwd() / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def process_and_validate(self) -> "Settings":
        # Derive DB name from the URI path
        if not self.MONGO_DB_NAME:
            db_name = self.MONGODB_URI.rsplit("/", 1)[-1].split("?")[0] if "/" in self.MONGODB_URI.split("//", 1)[-1] else ""
            self.MONGO_DB_NAME = db_name or "printdesk"

        # Accept comma-separated or JSON list origins
        if isinstance(self.ALLOWED_ORIGINS, str):
            raw = self.ALLOWED_ORIGINS.strip()
            if raw.startswith("["):
                self.ALLOWED_ORIGINS = [str(o).strip() for o in json.loads(raw) if str(o).strip()]
            else:
                self.ALLOWED_ORIGINS = [o.strip() for o in raw.split(",") if o.strip()]

        if self.DEFAULT_PAGE_SIZE > self.MAX_PAGE_SIZE:
            raise ValueError("DEFAULT_PAGE_SIZE cannot exceed MAX_PAGE_SIZE.")
        return self


# --- Global Settings Instance ---
try:
    settings = Settings()
    logger.info(f"Settings loaded for {settings.APP_NAME}")
    logger.info(f"MongoDB DB: {settings.MONGO_DB_NAME}")
    logger.info(f"Audit Log: {'Enabled' if settings.AUDIT_LOG_ENABLED else 'Disabled'}")
except ValueError as e:
    logger.critical(f"CONFIGURATION ERROR: {e}")
    sys.exit(f"Configuration Error: {e}")
