from typing import List, Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Campaign Tracker"
    database_url: str = "sqlite:///./campaign_tracker.db"

    # ingestion throttling (per client identifier, fixed window)
    rate_limit_max: int = 100
    rate_limit_window_seconds: int = 60
    rate_limit_max_keys: int = 10000

    # "shared": session_id falls back to visitor_id (one identity field)
    # "separate": visitor_id is stored as sent, session_id is always generated
    session_identity: Literal["shared", "separate"] = "shared"

    # reject events whose campaign_id does not exist instead of trusting it
    verify_campaign_id: bool = True

    cors_allow_origins: List[str] = ["*"]
    tracking_base_url: str = "http://localhost:8000"
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
