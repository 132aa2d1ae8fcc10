"""Seed the default investment strategies into the configured data file.

Usage: python -m services.portfolio.seed
"""

from services.config.env import get_logging_config, get_store_config
from services.config.logging_config import get_logger, setup_logging
from services.portfolio.store import PortfolioStore


def main():
    log_cfg = get_logging_config()
    setup_logging(level=log_cfg.level, log_dir=log_cfg.log_dir)
    logger = get_logger(__name__)
    store = PortfolioStore(get_store_config().data_path)
    added = store.seed_strategies()
    logger.info("Strategy seeding complete: %d added", len(added))


if __name__ == "__main__":
    main()
