"""Logging setup driven by the `log` plugin option."""

import logging

PACKAGE_LOGGER = "library_dll"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_LEVELS = {
    True: logging.INFO,
    "info": logging.INFO,
    "verbose": logging.DEBUG,
    False: logging.ERROR,
    "none": logging.ERROR,
}


def log_level_for(log: bool | str) -> int:
    """Map the `log` option to a logging level.

    Disabling logging still lets compile errors through.

    Example:
        >>> log_level_for("verbose") == logging.DEBUG
        True
    """
    try:
        return _LEVELS[log]
    except KeyError as e:
        raise ValueError(f"Unknown log option: {log!r}") from e


def configure_logging(log: bool | str = True) -> logging.Logger:
    """Configure the package logger.

    Installs a stream handler once; later calls only change the level.

    Args:
        log: True/'info', 'verbose', False/'none'

    Returns:
        The package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(log_level_for(log))
    if not any(getattr(handler, "_library_dll", False) for handler in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._library_dll = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
