"""Logger setup for the TinyLink service."""

import logging

__all__ = ["configure_logging"]


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a stream handler to the ``tinylink`` logger once."""
    logger = logging.getLogger("tinylink")
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    return logger
