"""Run the relay with uvicorn: ``python -m relay``."""

from __future__ import annotations

import logging
import sys

import uvicorn

from .app import create_app
from .config import Settings
from .errors import FatalConfigError

logger = logging.getLogger("relay")


def main() -> None:
    try:
        settings = Settings.from_env()
    except FatalConfigError as exc:
        logging.basicConfig(level=logging.INFO)
        logger.critical("Invalid configuration: %s", exc)
        sys.exit(1)

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        app = create_app(settings)
    except FatalConfigError as exc:
        logger.critical("Refusing to start: %s", exc)
        sys.exit(1)

    # uvicorn handles SIGINT/SIGTERM and runs the app's shutdown hooks
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
