import logging

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

_root_name = "channel_landing"


def setup_logging(level_name: str = "INFO") -> logging.Logger:
    """Attach a console handler to the package logger (once) and set its level."""
    logger = logging.getLogger(_root_name)
    # avoid stacking handlers when the app is created more than once
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    update_log_level(level_name)
    return logger


def update_log_level(level_name: str) -> None:
    """Change the package log level at runtime"""
    level = getattr(logging, level_name.upper(), logging.INFO)
    logger = logging.getLogger(_root_name)
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)
