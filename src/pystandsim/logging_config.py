"""
Logging configuration for pystandsim.

The library itself only attaches a NullHandler to the package logger;
applications (and the CLI) call setup_logging() to get console output.
"""
import logging
from typing import Optional

__all__ = [
    'PACKAGE_LOGGER',
    'get_logger',
    'setup_logging',
    'log_growth_summary',
    'log_harvest_event',
    'log_fallback',
]

PACKAGE_LOGGER = 'pystandsim'

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logging.getLogger(PACKAGE_LOGGER).addHandler(logging.NullHandler())


def get_logger(name: str) -> logging.Logger:
    """Get a logger nested under the package logger.

    Args:
        name: Module name, usually ``__name__``

    Returns:
        Logger instance
    """
    if name == PACKAGE_LOGGER or name.startswith(PACKAGE_LOGGER + '.'):
        return logging.getLogger(name)
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")


def setup_logging(level: int = logging.INFO, fmt: Optional[str] = None) -> logging.Logger:
    """Configure console logging for the package.

    Safe to call more than once; the console handler is only added once.

    Args:
        level: Logging level for the package logger
        fmt: Optional log format string

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    if not any(getattr(h, '_pystandsim_console', False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
        handler._pystandsim_console = True
        logger.addHandler(handler)
    return logger


def log_growth_summary(logger: logging.Logger, year: int, alive: int,
                       deaths: int, rel_density: float) -> None:
    """Log a one-line summary of a simulated year."""
    logger.debug(
        f"Year {year}: alive={alive}, deaths={deaths}, "
        f"relative density={rel_density:.3f}"
    )


def log_harvest_event(logger: logging.Logger, year: int, action_type: str,
                      trees_removed: int, volume_bf: float) -> None:
    """Log an executed harvest action."""
    logger.info(
        f"Year {year}: {action_type} removed {trees_removed} trees "
        f"({volume_bf:.0f} BF)"
    )


def log_fallback(logger: logging.Logger, what: str, requested: object,
                 used: object) -> None:
    """Log use of a documented default in place of missing reference data."""
    logger.warning(f"No {what} for {requested!r}; using default {used!r}")
