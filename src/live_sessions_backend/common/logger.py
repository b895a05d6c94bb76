'''
universal logger
'''
import logging
import sys

from .config import settings

def setup_logger(level: str = settings.LOG_LEVEL):
    """
    Configures and returns the engine logger.
    `level` is a standard level name; unknown names fall back to INFO.
    """
    logger = logging.getLogger('LS-engine')
    resolved = logging.getLevelName(level.upper())
    logger.setLevel(resolved if isinstance(resolved, int) else logging.INFO)

    handler = logging.StreamHandler(sys.stdout)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(module)s:%(lineno)d - %(levelname)s - %(message)s'
    )
    handler.setFormatter(formatter)

    if not logger.handlers:
        logger.addHandler(handler)

    return logger

# Single logger instance imported by every module
log = setup_logger()
