from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="CLOSETGUARD_", extra="ignore")

    app_name: str = "ClosetGuard Wardrobe Console"

    # Simulation
    tick_seconds: float = 2.0
    history_capacity: int = 50
    seed_history_count: int = 20
    seed_history_spacing_seconds: float = 3.0
    random_seed: Optional[int] = None  # None = OS entropy

    # Live reading at start-up
    initial_temperature: float = 24.5
    initial_humidity: float = 55.0
    initial_mold_index: float = 10.0

    # Operator thresholds (editable at runtime)
    default_max_humidity_percent: float = 65.0
    default_uv_trigger_period_hours: float = 24.0

    # Automation
    automation_enabled: bool = True
    humidity_hysteresis: float = 5.0
    mold_on_threshold: float = 40.0
    mold_off_threshold: float = 5.0

    # Dashboard only
    mold_critical_index: float = 50.0

    action_log_size: int = 200

    # Report generator
    gemini_api_key: str = Field(default="")
    gemini_model: str = "gemini-2.5-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    report_timeout_seconds: float = 20.0
    report_history_window: int = 20  # readings averaged for the prompt

    # Logging
    log_level: str = "INFO"
    log_file: str = "closetguard.log"  # "" disables the file handler


settings = Settings()
