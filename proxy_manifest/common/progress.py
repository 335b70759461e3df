# proxy_manifest/common/progress.py
from __future__ import annotations
import logging
import os
import sys
import time
from contextlib import contextmanager
from typing import Optional

from tqdm import tqdm


def _should_show_tqdm() -> bool:
    """Determine if tqdm should be shown.

    - PROXY_MANIFEST_TQDM=1 forces display
    - PROXY_MANIFEST_TQDM=0 disables
    - CI environment disables
    - Otherwise shown only when stderr is a TTY
    """
    flag = os.getenv("PROXY_MANIFEST_TQDM")
    if flag == "1":
        return True
    if flag == "0":
        return False
    if os.getenv("CI"):
        return False
    try:
        return bool(sys.stderr.isatty())
    except (AttributeError, ValueError):
        return False


class Timer:
    """Log a start line and an elapsed-time summary around a block."""

    def __init__(self, label: str = "task", logger: Optional[logging.Logger] = None):
        self.label = label
        self.logger = logger or logging.getLogger(__name__)
        self.start = 0.0
        self.elapsed = 0.0

    def __enter__(self):
        self.start = time.perf_counter()
        self.logger.info(">>> %s ...", self.label)
        return self

    def __exit__(self, exc_type, exc, tb):
        self.elapsed = time.perf_counter() - self.start
        status = "OK" if exc is None else "ERROR"
        self.logger.info("%s: %.2fs [%s]", self.label, self.elapsed, status)


@contextmanager
def progress_bar(total: Optional[int], desc: str = "", unit: str = "files", enabled: Optional[bool] = None):
    """Context manager yielding a tqdm bar on stderr.

    ``enabled=None`` defers to the environment (see ``_should_show_tqdm``).
    """
    disable = not (_should_show_tqdm() if enabled is None else enabled)
    with tqdm(total=total, desc=desc, unit=unit, disable=disable, leave=False, file=sys.stderr) as bar:
        yield bar
