import logging

from config.settings import LOG_LEVEL

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Configure root logging once for the app or a batch script."""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=LOG_FORMAT,
    )
    # SQL echo is noisy in batch runs
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
