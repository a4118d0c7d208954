import logging
import sys

def setup_logging():
    """
    Configure the application logger. Every module logs through the
    "populardoctor" logger returned here.
    """
    logger = logging.getLogger("populardoctor")
    logger.setLevel(logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.INFO)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    handler.setFormatter(formatter)

    # Re-imports in tests must not stack handlers
    if not logger.handlers:
        logger.addHandler(handler)

    return logger

logger = setup_logging()
