from pathlib import Path

from pydantic_settings import BaseSettings

# Application version - single source of truth
APP_VERSION = "0.3.0"

# Base directory for path calculations
_base_dir = Path(__file__).resolve().parent.parent.parent.parent


class Settings(BaseSettings):
    app_name: str = "Spool Usage Tracker"
    debug: bool = False  # Default to production mode

    # Paths
    base_dir: Path = _base_dir
    static_dir: Path = base_dir / "static"
    log_dir: Path = base_dir / "logs"
    database_url: str = f"sqlite+aiosqlite:///{_base_dir / 'spool_usage.db'}"

    # Logging
    log_level: str = "INFO"  # Override with LOG_LEVEL env var or DEBUG=true
    log_to_file: bool = True  # Set to false to disable file logging

    # API
    api_prefix: str = "/api"

    # Spoolman defaults, used until the settings table holds a value
    spoolman_url: str = "http://localhost:7912"
    flow_compensation_value: float = 1.5  # grams added per filament
    spoolman_timeout: float = 10.0  # seconds, applied to every upstream call

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()

if settings.log_to_file:
    settings.log_dir.mkdir(exist_ok=True)
