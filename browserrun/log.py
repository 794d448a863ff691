"""Logging setup for the command line tool."""

import logging
from typing import Optional

import click

_LEVEL_COLORS = {
    logging.DEBUG: "cyan",
    logging.INFO: "green",
    logging.WARNING: "yellow",
    logging.ERROR: "red",
    logging.CRITICAL: "red",
}


class ClickFormatter(logging.Formatter):
    """Prefix records with a colored level name."""

    def __init__(self, colors: bool = True):
        super().__init__("%(message)s")
        self.colors = colors

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        level = record.levelname
        if self.colors:
            level = click.style(level, fg=_LEVEL_COLORS.get(record.levelno), bold=True)
        return f"{level}: {message}"


class ClickHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        try:
            click.echo(self.format(record), err=True)
        except Exception:
            self.handleError(record)


def configure_logging(verbose: bool = False, colors: bool = True, logger: Optional[logging.Logger] = None) -> logging.Logger:
    """Attach a single stderr handler to the package logger.

    Calling it again replaces the previous handler, so children and tests
    can reconfigure freely.
    """
    logger = logger or logging.getLogger("browserrun")
    for handler in list(logger.handlers):
        if isinstance(handler, ClickHandler):
            logger.removeHandler(handler)

    handler = ClickHandler()
    handler.setFormatter(ClickFormatter(colors=colors))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    return logger
