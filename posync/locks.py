from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path

import portalocker

from posync.constants import PROJECT_DIRNAME


def run_lock_path(project_root: Path) -> Path:
    return project_root / PROJECT_DIRNAME / "run.lock"


@contextmanager
def acquire_run_lock(project_root: Path):
    """Hold the project-wide lock so only one run owns the catalogs at a time."""
    lock_path = run_lock_path(project_root)
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    lock = portalocker.Lock(str(lock_path), mode="a+", timeout=0)
    lock.acquire()
    try:
        yield lock
    finally:
        lock.release()
