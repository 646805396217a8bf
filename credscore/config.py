"""
Credscore — Configuration

All settings load from environment variables with safe defaults for development.
In production, set CREDSCORE_ENV=production to enforce required values.
"""
import os
from functools import lru_cache
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    def __init__(self):
        self.ENVIRONMENT = os.getenv("CREDSCORE_ENV", "development")

        # === Directory + activity store ===
        self.NEO4J_URI = os.getenv("NEO4J_URI", "bolt://localhost:7687")
        self.NEO4J_USER = os.getenv("NEO4J_USER", "neo4j")
        self.NEO4J_PASSWORD = os.getenv("NEO4J_PASSWORD", "credscore_dev_password")

        # === Score store, metrics, background jobs ===
        self.REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

        # === Chain indexer ===
        self.MORALIS_API_KEY = os.getenv("MORALIS_API_KEY", "")
        if not self.MORALIS_API_KEY and self.ENVIRONMENT == "production":
            raise RuntimeError("MORALIS_API_KEY must be set in production. Add it to .env")
        self.MORALIS_BASE_URL = os.getenv("MORALIS_BASE_URL", "https://deep-index.moralis.io/api/v2.2")
        self.CHAIN_INDEXER_CHAINS: List[str] = [
            c.strip()
            for c in os.getenv("CHAIN_INDEXER_CHAINS", "eth,base,polygon,arbitrum,optimism").split(",")
            if c.strip()
        ]

        # === Scoring ===
        self.SCORE_CONFIG_PATH = os.getenv("SCORE_CONFIG_PATH", "")
        self.SCORE_DEADLINE_SECONDS = float(os.getenv("SCORE_DEADLINE_SECONDS", "10"))
        self.SCORE_MAX_AGE_HOURS = float(os.getenv("SCORE_MAX_AGE_HOURS", "24"))
        self.SCORE_TTL_SECONDS = int(os.getenv("SCORE_TTL_SECONDS", str(7 * 86400)))

        # === Logging ===
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.LOG_JSON = _env_bool("LOG_JSON", "true")

        # === Application ===
        self.CREDSCORE_HOST = os.getenv("CREDSCORE_HOST", "0.0.0.0")
        self.CREDSCORE_PORT = int(os.getenv("CREDSCORE_PORT", "8000"))

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def score_deadline(self):
        """Fan-in deadline in seconds, or None when disabled."""
        return self.SCORE_DEADLINE_SECONDS if self.SCORE_DEADLINE_SECONDS > 0 else None


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
