# src/unichat/logging_config.py
from __future__ import annotations
import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_LOG_MAX_BYTES = 1_000_000
DEFAULT_LOG_BACKUP_COUNT = 3


class _FileFormatter(logging.Formatter):
    def __init__(self):
        super().__init__("%(asctime)s | %(levelname)s | %(name)s | %(message)s", "%Y-%m-%d %H:%M:%S")


def init_logging(level: str = "INFO", log_file: Optional[Path] = None,
                 also_console: bool = True, console: Optional[Console] = None) -> None:
    """
    Configure the 'unichat' logger tree. Safe to call more than once (tests do).
    Console output goes to stderr so streamed text on stdout stays clean.
    """
    lvl = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger("unichat")
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    root.setLevel(lvl)
    root.propagate = False

    if also_console:
        ch = RichHandler(console=console or Console(stderr=True), show_path=False, rich_tracebacks=False)
        ch.setLevel(lvl)
        root.addHandler(ch)

    if log_file:
        log_file = Path(log_file).expanduser()
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.handlers.RotatingFileHandler(
            str(log_file), maxBytes=DEFAULT_LOG_MAX_BYTES, backupCount=DEFAULT_LOG_BACKUP_COUNT,
            encoding="utf-8", delay=True,
        )
        fh.setFormatter(_FileFormatter())
        fh.setLevel(lvl)
        root.addHandler(fh)

    # Reduce noise from the HTTP stack
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
