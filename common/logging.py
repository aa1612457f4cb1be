import logging
import os
from common.config import Config

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging():
    """Setup logging configuration and return logger instance"""
    os.makedirs(Config.LOG_DIR, exist_ok=True)
    level = getattr(logging, Config.LOG_LEVEL, logging.INFO)
    logging.basicConfig(
        filename=os.path.join(Config.LOG_DIR, Config.LOG_FILE),
        level=level,
        format=LOG_FORMAT,
        filemode='a'  # Append mode
    )

    logger = logging.getLogger("amicus_research")

    # Console output for development; reloads must not stack handlers
    if not logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(console_handler)

    return logger


# Create a global logger instance
logger = setup_logging()
