from logging import FileHandler, Formatter, StreamHandler, getLogger

__all__ = ["get_logger", "create_logger", "DEFAULT_LOGGER_NAME"]

DEFAULT_LOGGER_NAME = "drillcube"
DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(message)s"

logger = None


def get_logger(path=None):
    """Get drillcube default logger"""
    global logger

    if logger:
        return logger
    else:
        return create_logger(path)


def create_logger(path=None, level=None):
    """Create a default logger. Records go to `path` when given, otherwise to
    the standard error stream."""
    global logger
    logger = getLogger(DEFAULT_LOGGER_NAME)
    logger.propagate = False

    if level is not None:
        logger.setLevel(level)

    if not logger.handlers:
        formatter = Formatter(fmt=DEFAULT_FORMAT)

        if path:
            handler = FileHandler(path)
        else:
            handler = StreamHandler()

        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
