import logging, os

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOGGER_NAME = "school_results"
_DEFAULT_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

def setup_logging(level=None):
    level_name = (level or _DEFAULT_LEVEL).upper()
    resolved = getattr(logging, level_name, logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(resolved)

    # Avoid duplicate console handlers when the app factory runs more than once
    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(ch)

    for handler in logger.handlers:
        handler.setLevel(resolved)

    logger.propagate = False
    return logger

def get_logger(name=None):
    base = logging.getLogger(LOGGER_NAME)
    return base.getChild(name) if name else base
