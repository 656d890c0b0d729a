"""Configuration management"""
import os
from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # PostgreSQL
    database_url: Optional[str] = os.getenv("DATABASE_URL")  # Full URL override, e.g. sqlite+aiosqlite:///records.db
    postgres_host: str = os.getenv("POSTGRES_HOST", "localhost")
    postgres_port: int = int(os.getenv("POSTGRES_PORT", 5432))
    postgres_db: str = os.getenv("POSTGRES_DB", "recordkeeper")
    postgres_user: str = os.getenv("POSTGRES_USER", "recordkeeper")
    postgres_password: str = os.getenv("POSTGRES_PASSWORD", "recordkeeper")
    postgres_pool_size: int = int(os.getenv("POSTGRES_POOL_SIZE", 5))  # 0 = NullPool
    postgres_max_overflow: int = int(os.getenv("POSTGRES_MAX_OVERFLOW", 10))
    postgres_pool_timeout: float = float(os.getenv("POSTGRES_POOL_TIMEOUT", 30))
    postgres_pool_recycle: int = int(os.getenv("POSTGRES_POOL_RECYCLE", 1800))
    postgres_echo_sql: bool = os.getenv("POSTGRES_ECHO_SQL", "false").lower() == "true"

    # Wind legality for record eligibility
    wind_limit: float = float(os.getenv("WIND_LIMIT", "2.0"))  # m/s, strictly above is wind-assisted
    wind_rule_age_threshold: int = int(os.getenv("WIND_RULE_AGE_THRESHOLD", 14))
    # Short discipline names seeded as wind-sensitive (comma-separated)
    wind_sensitive_disciplines: str = os.getenv(
        "WIND_SENSITIVE_DISCIPLINES",
        "60m,100m,150m,200m,60m aj,80m aj,100m aj,110m aj,Pituus,Kolmiloikka",
    )

    # Record engine behaviour
    partition_locking_enabled: bool = os.getenv("PARTITION_LOCKING_ENABLED", "true").lower() == "true"
    store_retry_attempts: int = int(os.getenv("STORE_RETRY_ATTEMPTS", 3))
    store_retry_max_wait_seconds: float = float(os.getenv("STORE_RETRY_MAX_WAIT_SECONDS", "2.0"))
    seed_disciplines: bool = os.getenv("SEED_DISCIPLINES", "true").lower() == "true"

    # Metrics and logging
    enable_prometheus_metrics: bool = os.getenv("ENABLE_PROMETHEUS_METRICS", "false").lower() == "true"
    log_record_details: bool = os.getenv("LOG_RECORD_DETAILS", "false").lower() == "true"

    # API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", 8000))
    log_level: str = os.getenv("LOG_LEVEL", "info")

    # CORS - comma-separated list of allowed origins
    cors_origins: str = os.getenv("CORS_ORIGINS", "http://localhost:1420")

    @property
    def cors_origins_list(self) -> list:
        """Parse CORS_ORIGINS into a list of origins"""
        if not self.cors_origins:
            return ["http://localhost:1420"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def wind_sensitive_discipline_names(self) -> frozenset:
        """Parse WIND_SENSITIVE_DISCIPLINES into a set of exact short names"""
        return frozenset(
            name.strip() for name in self.wind_sensitive_disciplines.split(",") if name.strip()
        )

    class Config:
        env_file = ".env"


settings = Settings()
