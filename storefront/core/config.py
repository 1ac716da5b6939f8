import os
from dataclasses import dataclass
from typing import List

from dotenv import load_dotenv


load_dotenv()


@dataclass(frozen=True)
class Config:
    """Application configuration loaded from environment variables.

    Provides validated access to the FakeStore API, the contact relay and the
    local storage file.
    """

    FAKESTORE_API_URL: str = os.getenv("FAKESTORE_API_URL", "https://fakestoreapi.com")
    CONTACT_RELAY_URL: str = os.getenv("CONTACT_RELAY_URL", "https://formspree.io/f/mnnzdqdp")
    STORAGE_PATH: str = os.getenv("STORAGE_PATH", "storefront_data.json")
    HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))
    SIMULATED_LATENCY_SECONDS: float = float(os.getenv("SIMULATED_LATENCY_SECONDS", "0"))
    TAX_RATE: float = float(os.getenv("TAX_RATE", "0.08"))
    LOW_STOCK_THRESHOLD: int = int(os.getenv("LOW_STOCK_THRESHOLD", "10"))
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "production")

    @staticmethod
    def allowed_origins(extra_origins: List[str] | None = None) -> List[str]:
        env_origins = [o.strip() for o in os.getenv("CORS_ALLOWED_ORIGINS", "http://localhost:4200").split(",") if o.strip()]
        # Angular dev server under both host spellings
        defaults = [
            "http://localhost:4200",
            "http://127.0.0.1:4200",
        ]
        merged = env_origins + defaults
        if extra_origins:
            merged.extend(extra_origins)
        # Deduplicate while preserving order
        seen = set()
        result: List[str] = []
        for origin in merged:
            if origin not in seen:
                seen.add(origin)
                result.append(origin)
        return result

    @classmethod
    def validate(cls) -> None:
        if not cls.FAKESTORE_API_URL.startswith(("http://", "https://")):
            raise ValueError("FAKESTORE_API_URL must be an http(s) URL")
        if not cls.CONTACT_RELAY_URL.startswith(("http://", "https://")):
            raise ValueError("CONTACT_RELAY_URL must be an http(s) URL")
        if cls.TAX_RATE < 0:
            raise ValueError("TAX_RATE must not be negative")
        if cls.LOW_STOCK_THRESHOLD < 0:
            raise ValueError("LOW_STOCK_THRESHOLD must not be negative")
        if cls.SIMULATED_LATENCY_SECONDS < 0:
            raise ValueError("SIMULATED_LATENCY_SECONDS must not be negative")
