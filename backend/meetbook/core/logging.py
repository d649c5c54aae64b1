import logging
import sys


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure the ``meetbook`` logger hierarchy once per process."""
    logger = logging.getLogger("meetbook")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        logger.addHandler(handler)
    logger.propagate = False
    return logger
