"""
Logging setup for porygodot.

Every module logs under the 'porygodot' logger tree. The CLI attaches one
stdout handler to the top of that tree: WARNING by default, INFO with -v,
DEBUG with -d.
"""

import logging
import sys
from typing import Optional

ROOT_LOGGER = 'porygodot'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

_handler: Optional[logging.Handler] = None


def resolve_level(verbose: bool = False, debug: bool = False) -> int:
    if debug:
        return logging.DEBUG
    if verbose:
        return logging.INFO
    return logging.WARNING


def setup_logging(verbose: bool = False, debug: bool = False) -> logging.Logger:
    """
    Send porygodot log records to stdout.

    A second call replaces the handler installed by the first, so running
    main() more than once in a process does not duplicate output.

    Args:
        verbose: If True, show INFO level messages
        debug: If True, show DEBUG level messages (implies verbose)

    Returns:
        The 'porygodot' logger
    """
    global _handler
    logger = logging.getLogger(ROOT_LOGGER)
    if _handler is not None:
        logger.removeHandler(_handler)

    _handler = logging.StreamHandler(sys.stdout)
    _handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(_handler)
    logger.setLevel(resolve_level(verbose, debug))
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger for one module, e.g. get_logger('converter') -> 'porygodot.converter'."""
    if name:
        return logging.getLogger(f'{ROOT_LOGGER}.{name}')
    return logging.getLogger(ROOT_LOGGER)
