import logging
import sys
from pathlib import Path

from signal_relay.config import Settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(settings: Settings) -> None:
    """Console logging always; combined.log and error.log when LOG_DIR is set."""
    handlers = [logging.StreamHandler(sys.stdout)]

    if settings.log_dir:
        log_dir = Path(settings.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_dir / "combined.log"))
        error_handler = logging.FileHandler(log_dir / "error.log")
        error_handler.setLevel(logging.ERROR)
        handlers.append(error_handler)

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
    # Request URLs carry signed query strings
    logging.getLogger("httpx").setLevel(logging.WARNING)
