from __future__ import annotations

import argparse
import logging
from time import perf_counter
from typing import Sequence

from config import AppSettings, config
from db.db import init_db
from db.repositories import PriceRepository
from services.ingestion import ingest_once
from services.market_client import MarketClient
from services.price_recorder import PriceRecorder

logger = logging.getLogger(__name__)


def run(settings: AppSettings, *, vs_currency: str, per_page: int, page: int, database_url: str) -> None:
    ingestor_config = settings.ingestor_config()

    logger.info("Initializing DB at %s", database_url)
    session = init_db(database_url)
    engine = session.get_bind()
    try:
        client = MarketClient(ingestor_config)
        recorder = PriceRecorder(PriceRepository(session), ingestor_config)

        started = perf_counter()
        outcome = ingest_once(client, recorder, vs_currency=vs_currency, per_page=per_page, page=page)
        elapsed = perf_counter() - started
    finally:
        session.close()
        engine.dispose()

    if outcome is None:
        logger.info("Ingestion pass finished in %.2fs with nothing to record", elapsed)
    else:
        logger.info(
            "Ingestion pass finished in %.2fs: inserted=%d skipped=%d",
            elapsed,
            outcome.inserted,
            outcome.skipped,
        )


def main(argv: Sequence[str] | None = None) -> None:
    settings = config()
    parser = argparse.ArgumentParser(description="Fetch top markets by 24h volume and record their prices.")
    parser.add_argument("--vs-currency", default=settings.ingestor_vs_currency)
    parser.add_argument("--per-page", type=int, default=settings.ingestor_per_page)
    parser.add_argument("--page", type=int, default=1)
    parser.add_argument("--database-url", default=settings.database_url)
    args = parser.parse_args(argv)
    run(
        settings,
        vs_currency=args.vs_currency,
        per_page=args.per_page,
        page=args.page,
        database_url=args.database_url,
    )


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    main()
