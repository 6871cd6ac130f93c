# Runtime configuration read from the environment
import os
from dataclasses import dataclass, field
from typing import List


def _split_origins(value: str) -> List[str]:
    return [origin.strip() for origin in value.split(",") if origin.strip()]


@dataclass
class Settings:
    api_base_url: str = field(
        default_factory=lambda: os.getenv(
            "EXPENSE_API_BASE_URL", "http://localhost:5000/api"
        )
    )
    currency: str = field(
        default_factory=lambda: os.getenv("EXPENSE_IMPORT_CURRENCY", "INR")
    )
    timeout: float = field(
        default_factory=lambda: float(os.getenv("EXPENSE_IMPORT_TIMEOUT", "10"))
    )
    cors_origins: List[str] = field(
        default_factory=lambda: _split_origins(
            os.getenv("EXPENSE_IMPORT_CORS_ORIGINS", "http://localhost:13030")
        )
    )
    log_level: str = field(
        default_factory=lambda: os.getenv("EXPENSE_IMPORT_LOG_LEVEL", "INFO")
    )


def get_settings() -> Settings:
    return Settings()
