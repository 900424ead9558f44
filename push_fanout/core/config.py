from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# -------------------------------------------------
# Explicitly load .env (CRITICAL)
# -------------------------------------------------

BASE_DIR = Path(__file__).resolve().parent.parent.parent
ENV_PATH = BASE_DIR / ".env"

load_dotenv(dotenv_path=ENV_PATH)


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite+aiosqlite:///./push_fanout.db"
    ENVIRONMENT: str = "development"
    SQL_ECHO: bool = False
    LOG_LEVEL: str = "INFO"

    # Firebase Cloud Messaging. Leave credentials empty to disable dispatch (every token fails as unavailable).
    FIREBASE_CREDENTIALS_PATH: str = Field(
        default="",
        validation_alias=AliasChoices("FIREBASE_CREDENTIALS_PATH", "FIREBASE_SERVICE_ACCOUNT_PATH"),
        description="Path to Firebase service account JSON file",
    )
    FIREBASE_CREDENTIALS_JSON: str = Field(
        default="",
        validation_alias=AliasChoices("FIREBASE_CREDENTIALS_JSON", "FIREBASE_SERVICE_ACCOUNT"),
        description="Alternatively: raw JSON string of service account (e.g. from env)",
    )
    FIREBASE_PROJECT_ID: str = ""

    # Fan-out pacing (env: PUSH_BATCH_SIZE, PUSH_BATCH_DELAY_MS)
    PUSH_BATCH_SIZE: int = Field(default=100, ge=1, description="Tokens sent concurrently per batch")
    PUSH_BATCH_DELAY_MS: int = Field(default=500, ge=0, description="Pause between batches in milliseconds")
    PUSH_SEND_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0, description="Timeout of a single provider call")
    PUSH_HISTORY_TIMEOUT_SECONDS: float = Field(default=5.0, gt=0, description="Timeout of the history write")
    PUSH_FANOUT_TIMEOUT_SECONDS: float | None = Field(
        default=None,
        description="Optional overall deadline; batches not started by then are reported as failed",
    )

    # Client contract: the channel must exist in the Android app, the click action is routed by both apps
    ANDROID_CHANNEL_ID: str = "foodtruck_notifications"
    PUSH_CLICK_ACTION: str = "FOODTRUCK_NOTIFICATION_CLICK"

    class Config:
        extra = "ignore"
        env_file = str(ENV_PATH)
        env_file_encoding = "utf-8"


settings = Settings()
