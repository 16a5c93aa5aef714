# app/utils/logging.py

import logging
import os
import sys

_ROOT = "maritime_jobs"
_configured = False


def _configure_root() -> None:
    global _configured
    if _configured:
        return

    root = logging.getLogger(_ROOT)
    root.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
    root.addHandler(handler)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """
    Logger por módulo: maritime_jobs.<name>
    """
    _configure_root()
    return logging.getLogger(f"{_ROOT}.{name}")
