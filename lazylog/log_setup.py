"""Optional debug logging to a file.

The package logger carries a ``NullHandler`` so nothing reaches the terminal
that fzf owns. A log file is attached only when one is configured.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

LOG_FILE_ENV = "LAZYLOG_LOG_FILE"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_CONFIGURED_PATH: Path | None = None


def configure_logging(log_file: str | Path | None = None) -> Path | None:
    """Attach a DEBUG file handler to the ``lazylog`` logger.

    ``log_file`` falls back to ``$LAZYLOG_LOG_FILE``. The resolved path is
    exported back into the environment so spawned helpers log to the same file.
    Repeated calls with the same path are no-ops.
    """
    global _CONFIGURED_PATH

    raw = log_file if log_file else os.environ.get(LOG_FILE_ENV, "")
    if not raw:
        return None
    path = Path(raw).expanduser()
    if _CONFIGURED_PATH == path:
        return path

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, encoding="utf-8")
    except OSError:
        return None
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger = logging.getLogger("lazylog")
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG)
    os.environ[LOG_FILE_ENV] = str(path)
    _CONFIGURED_PATH = path
    return path
