"""Main entry point for Vakit-Push application."""

import logging

import uvicorn

from vakit_push.api.app import create_app
from vakit_push.config import AppConfig, setup_logging


def main() -> None:
    """Run the Vakit-Push application."""
    config = AppConfig.from_env()
    setup_logging(config.log_level)

    logger = logging.getLogger(__name__)
    logger.info("Vakit-Push başlatılıyor...")
    logger.info(f"Abonelik deposu: {config.store_path}")
    logger.info(f"Bölgesel sağlayıcı: {'açık' if config.bonnetid_api_token else 'kapalı'}")

    app = create_app(config)

    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
