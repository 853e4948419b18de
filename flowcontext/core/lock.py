from __future__ import annotations

import os
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

LOCK_NAME = ".lock"


@contextmanager
def store_lock(store_dir: Path, *, timeout_s: float = 2.0):
    """Best-effort cross-process lock for solution writes.

    Yields True if lock was acquired, else False. The holder's pid is written
    into the lock file while it is held.
    """

    lock_path = Path(store_dir) / LOCK_NAME
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        import fcntl

        f = lock_path.open("a+", encoding="utf-8")
    except (ImportError, OSError):
        yield False
        return

    deadline = time.time() + float(timeout_s)
    locked = False
    try:
        while time.time() < deadline:
            try:
                fcntl.flock(f.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                locked = True
                break
            except BlockingIOError:
                time.sleep(0.02)
            except OSError:
                break
        if locked:
            f.seek(0)
            f.truncate()
            f.write(str(os.getpid()))
            f.flush()
        yield locked
    finally:
        if locked:
            f.seek(0)
            f.truncate()
            fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        f.close()


def lock_holder(store_dir: Path) -> Optional[int]:
    """Pid recorded by the current holder of the store lock, if any."""
    try:
        raw = (Path(store_dir) / LOCK_NAME).read_text(encoding="utf-8").strip()
    except OSError:
        return None
    return int(raw) if raw.isdigit() else None
