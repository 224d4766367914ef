"""Console logging setup shared by the API process and the Celery worker."""
import logging

from studio.core.config import settings

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


def setup_logging(level: str | None = None) -> None:
    """Attach a single stream handler to the ``studio`` logger. Idempotent."""
    logger = logging.getLogger("studio")
    log_level = _LEVELS.get((level or settings.LOG_LEVEL).upper(), logging.INFO)
    logger.setLevel(log_level)
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s - %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )
    )
    logger.addHandler(handler)
    logger.propagate = False
