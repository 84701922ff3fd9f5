"""Logger Setup

Each command builds its own logger and passes it down explicitly;
nothing here touches the root logger.
"""

import logging
import sys

CONSOLE_FORMAT = "%(asctime)s [%(levelname)8s] %(name)s - %(message)s"


def setup_logger(name: str = "fai", verbose: bool = False) -> logging.Logger:
    """Return a logger writing to stderr. DEBUG when verbose, WARNING otherwise."""
    logger = logging.getLogger(name)
    logger.handlers = []
    logger.propagate = False

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
    logger.addHandler(handler)

    set_verbose(logger, verbose)
    return logger


def set_verbose(logger: logging.Logger, verbose: bool) -> None:
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def preview(text: str, length: int = 100) -> str:
    """Shorten text for debug lines."""
    if len(text) <= length:
        return text
    return text[:length] + "..."
