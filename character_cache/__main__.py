"""Main entry point for running the character cache server."""

import uvicorn

from character_cache.api.app import create_app
from character_cache.config.settings import AppConfig
from character_cache.observability.logging import configure_logging


def main() -> None:
    config = AppConfig.from_env()
    configure_logging(config.logging)

    uvicorn.run(
        create_app(config),
        host=config.host,
        port=config.port,
        log_level=config.logging.log_level.lower(),
    )


if __name__ == "__main__":
    main()
