from pydantic_settings import BaseSettings
from typing import Optional
from pathlib import Path

# Project root (parent of the library_api package)
BACKEND_DIR = Path(__file__).parent.parent
ENV_FILE = BACKEND_DIR / ".env"

class Settings(BaseSettings):
    # Server settings
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    # Storage backend: "csv" (one file per table) or "sql" (SQLAlchemy)
    store_backend: str = "csv"
    csv_dir: str = str(BACKEND_DIR / "csv_files")
    csv_fallback: bool = True  # Retry failed SQL reads against the CSV files
    store_timeout_seconds: float = 5.0  # Lock / pool wait before StoreUnavailable

    # Database settings - used when store_backend == "sql"
    database_url: Optional[str] = None  # Full SQLAlchemy URL, overrides db_* below
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "library"
    db_user: str = "library"
    db_password: str = ""
    db_ssl_mode: str = "prefer"  # Options: disable, allow, prefer, require, verify-ca, verify-full

    # Circulation rules
    loan_period_days: int = 14
    timezone: str = "UTC"  # pytz zone used for borrow/due/return dates

    # MQTT bridge for change events between API processes
    mqtt_enabled: bool = False
    mqtt_broker: str = "localhost"
    mqtt_port: int = 1883
    mqtt_username: Optional[str] = None
    mqtt_password: Optional[str] = None
    mqtt_topic_prefix: str = "library/events"

    # MQTT TLS/SSL settings
    mqtt_use_tls: bool = False
    mqtt_tls_insecure: bool = False  # Allow insecure TLS (self-signed certs)
    mqtt_ca_cert: Optional[str] = None
    mqtt_client_cert: Optional[str] = None
    mqtt_client_key: Optional[str] = None

    class Config:
        env_file = str(ENV_FILE) if ENV_FILE.exists() else ".env"
        case_sensitive = False

settings = Settings()
