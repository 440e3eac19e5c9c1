from __future__ import annotations

import logging
import sys

from rich.logging import RichHandler

from .ui import OutputMode, make_console

_HANDLER_ATTR = "_depwave_handler"


def configure_logging(level: int | str = logging.WARNING, *, output_mode: OutputMode = "plain") -> logging.Logger:
    """Attach one handler to the ``depwave`` logger. Safe to call repeatedly."""
    logger = logging.getLogger("depwave")
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.WARNING)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_ATTR, False):
            logger.removeHandler(handler)

    handler: logging.Handler
    if output_mode == "rich":
        handler = RichHandler(
            console=make_console("rich", stderr=True),
            show_time=False,
            show_path=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    setattr(handler, _HANDLER_ATTR, True)
    logger.addHandler(handler)
    return logger
