"""Logging helpers.

Every component logs through a standard library logger. Components take an
optional ``logger`` argument so tests and embedding applications can inject
their own; otherwise the module logger is used.
"""

import logging

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

PACKAGE_LOGGER = "contentstack_migration"

# CLI scale: 0 silly, 1 trace, 2 debug, 3 info, 4 warn, 5 error
CLI_LEVELS: dict[int, int] = {
    0: TRACE,
    1: TRACE,
    2: logging.DEBUG,
    3: logging.INFO,
    4: logging.WARNING,
    5: logging.ERROR,
}


def trace(logger: logging.Logger, message: str, *args: object) -> None:
    """Log at TRACE level."""
    if logger.isEnabledFor(TRACE):
        logger.log(TRACE, message, *args)


def level_from_cli(value: int) -> int:
    """Translate a 0-5 CLI log level to a logging level.

    Raises:
        ValueError: If value is outside 0-5
    """
    try:
        return CLI_LEVELS[value]
    except KeyError:
        raise ValueError(f"Log level must be between 0 and 5, got {value}") from None


def configure_logging(cli_level: int = 3) -> logging.Logger:
    """Attach a single stream handler to the package logger.

    Calling it again only adjusts the level.

    Args:
        cli_level: Log level on the 0-5 CLI scale

    Returns:
        The package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level_from_cli(cli_level))

    if not any(getattr(h, "_contentstack_migration", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s")
        )
        handler._contentstack_migration = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    return logger
