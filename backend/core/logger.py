import logging
import sys

ROOT_LOGGER_NAME = "stocktake"

_configured = False


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a single console handler to the ``stocktake`` logger.

    Safe to call more than once; later calls only adjust the level.
    """
    global _configured
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level.upper())

    if not _configured:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )
        logger.addHandler(handler)
        logger.propagate = False
        _configured = True

    return logger


def get_logger(name: str) -> logging.Logger:
    """Module logger under the ``stocktake`` namespace, e.g. ``stocktake.auth``."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
