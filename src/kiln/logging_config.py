"""Diagnostic log setup for Kiln.

The log lives in the build directory and rotates so that a long-lived project
never grows it without bound. All modules log through
``logging.getLogger(__name__)``; the file handler's lock serializes records
coming from parallel workers.
"""

import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

from .config.layout import BuildLayout

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_handler: Optional[RotatingFileHandler] = None


def setup_logging(layout: BuildLayout, level: int = logging.INFO) -> RotatingFileHandler:
    """Attach a rotating file handler for the project's build log.

    Calling it again (e.g., for another project in the same process) replaces
    the previous handler.

    Args:
        layout: Build layout of the project being built
        level: Minimum level written to the log

    Returns:
        The installed handler
    """
    global _handler

    layout.build_root.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("kiln")
    logger.setLevel(level)

    if _handler is not None:
        logger.removeHandler(_handler)
        _handler.close()

    file_handler = RotatingFileHandler(
        str(layout.log_path),
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(file_handler)

    _handler = file_handler
    return file_handler


def shutdown_logging() -> None:
    """Detach and close the handler installed by setup_logging()."""
    global _handler

    if _handler is None:
        return
    logging.getLogger("kiln").removeHandler(_handler)
    _handler.close()
    _handler = None
