"""Logging configuration for the ``macvod`` logger tree.

Library modules only ever call ``logging.getLogger(__name__)``; handlers
are installed here, by the CLI, and nowhere else.  Rich is imported
lazily so that ``--help`` keeps working without it.
"""

from __future__ import annotations

import logging

_ROOT_LOGGER = "macvod"
_PLAIN_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(verbose: bool = False) -> logging.Logger:
    """Attach one handler to the ``macvod`` logger and set its level.

    ``verbose`` selects ``DEBUG``; otherwise only warnings and errors are
    shown.  Calling this again replaces the previously installed
    handler.
    """
    logger = logging.getLogger(_ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    level = logging.DEBUG if verbose else logging.WARNING
    logger.setLevel(level)
    logger.propagate = False

    try:
        from rich.logging import RichHandler
    except ModuleNotFoundError:
        handler: logging.Handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_PLAIN_FORMAT))
    else:
        handler = RichHandler(show_path=verbose, rich_tracebacks=verbose, markup=False)

    handler.setLevel(level)
    logger.addHandler(handler)
    return logger
