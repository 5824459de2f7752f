"""Logging configuration for the chess backend."""

import logging
import sys

LOG_FORMATS: dict[str, str] = {
    "simple": "%(name)s - %(levelname)s - %(message)s",
    "detailed": "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s",
}


def setup_logging(level: str = "INFO", format_style: str = "simple") -> None:
    """
    Set up logging for the entire application.

    Modules get their own logger through `logging.getLogger(__name__)`; this only configures the root.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    log_format = LOG_FORMATS.get(format_style, LOG_FORMATS["simple"])

    logging.basicConfig(
        level=numeric_level,
        format=log_format,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # SQLAlchemy echoes every statement at INFO when echo=True. Keep it out of the app's own level.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
