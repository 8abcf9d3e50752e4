from __future__ import annotations

from dataclasses import dataclass
from functools import cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ARTIFACTS_DIR = PROJECT_ROOT / "artifacts"
DB_FILE = ARTIFACTS_DIR / "market_data.db"


@dataclass(frozen=True)
class IngestorConfig:
    """Everything the market fetcher and price recorder need from the outside world."""

    base_url: str
    api_key_header: str
    api_key: str
    vs_currency: str
    source: str
    timeout_seconds: float = 15.0


class AppSettings(BaseSettings):
    ingestor_base_url: str = "https://api.coingecko.com/api/v3"
    ingestor_api_key_header: str = "x-cg-demo-api-key"
    ingestor_api_key: str = ""
    ingestor_vs_currency: str = "usd"
    ingestor_source: str = "coingecko"
    ingestor_per_page: int = 10
    database_url: str = f"sqlite:///{DB_FILE}"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    def ingestor_config(self) -> IngestorConfig:
        return IngestorConfig(
            base_url=self.ingestor_base_url,
            api_key_header=self.ingestor_api_key_header,
            api_key=self.ingestor_api_key,
            vs_currency=self.ingestor_vs_currency,
            source=self.ingestor_source,
        )


@cache
def config() -> AppSettings:
    return AppSettings()
