"""Configuration management for the workforce engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment."""

    database_url: str
    engine_version: str
    host: str
    port: int
    debug: bool
    log_level: str
    log_json: bool
    api_prefix: str
    attendance_timezone: str
    tax_rate: Decimal
    payroll_batch_size: int
    payroll_min_year: int
    manager_department_scope: str

    @property
    def HOST(self) -> str:
        """Alias for host."""
        return self.host

    @property
    def PORT(self) -> int:
        """Alias for port."""
        return self.port

    @property
    def DEBUG(self) -> bool:
        """Alias for debug."""
        return self.debug

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment variables."""
        load_dotenv()

        return cls(
            database_url=os.getenv(
                "DATABASE_URL",
                "sqlite+aiosqlite:///./workforce.db",
            ),
            engine_version=os.getenv("ENGINE_VERSION", "0.1.0"),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_json=os.getenv("LOG_JSON", "false").lower() == "true",
            api_prefix=os.getenv("API_PREFIX", "/api/v1"),
            attendance_timezone=os.getenv("ATTENDANCE_TIMEZONE", "UTC"),
            tax_rate=Decimal(os.getenv("TAX_RATE", "0.10")),
            payroll_batch_size=max(1, int(os.getenv("PAYROLL_BATCH_SIZE", "10"))),
            payroll_min_year=int(os.getenv("PAYROLL_MIN_YEAR", "2000")),
            manager_department_scope=os.getenv(
                "MANAGER_DEPARTMENT_SCOPE", "unrestricted"
            ).lower(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()
