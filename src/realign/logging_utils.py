from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(
    log_path: Path | None = None,
    level: int | str = logging.INFO,
    *,
    console: bool = True,
) -> logging.Logger:
    """Attach a rich console handler (stderr) and an optional file handler to the realign logger.

    Console output goes to stderr so CLI results on stdout stay machine-readable.
    Calling it again replaces the handlers installed by the previous call.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logger = logging.getLogger("realign")
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console:
        logger.addHandler(
            RichHandler(
                console=Console(stderr=True),
                rich_tracebacks=True,
                show_path=False,
                show_time=True,
                show_level=True,
            )
        )
    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_path, encoding="utf-8")
        fh.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s", "%Y-%m-%d %H:%M:%S")
        )
        logger.addHandler(fh)
    return logger
