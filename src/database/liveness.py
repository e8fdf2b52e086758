# src/database/liveness.py
"""
Thread liveness probe used to adopt abandoned sessions.

A trading loop that is alive holds a ``<thread_id>.lock`` file in the lock
directory. A session row whose thread has no lock file was left behind by a
loop that died and can be taken over by a new process.

This is a single-host check, not a distributed lock: it only works when every
cooperating process sees the same local filesystem.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from src.database.mapper import decode_pair

logger = logging.getLogger(__name__)


class LivenessProbe(Protocol):
    def is_claimed(self, thread_id: str) -> bool:
        """Return True while some live process owns ``thread_id``."""
        ...


@dataclass(frozen=True)
class LockFileProbe:
    """
    A thread is claimed while ``<lock_dir>/<thread_id>.lock`` exists.

    A lock file that cannot be stat'ed (permissions, I/O error) counts as
    absent, so its session becomes adoptable; the failure is logged.
    """

    lock_dir: Path = Path(".")

    def lock_path(self, thread_id: str) -> Path:
        return Path(self.lock_dir) / f"{thread_id}.lock"

    def is_claimed(self, thread_id: str) -> bool:
        path = self.lock_path(thread_id)
        try:
            path.stat()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"Cannot check lock file {path}, treating it as absent: {e}")
            return False
        return True


def first_adoptable(rows: Iterable[Any], probe: LivenessProbe) -> tuple[str, str]:
    """
    Return the first (thread_id, thread_id_session) whose thread is not claimed.

    Rows are checked in the order given and scanning stops at the first match,
    so later rows are never probed. Returns ("", "") when every thread is
    claimed.
    """
    for row in rows:
        thread_id, thread_id_session = decode_pair(row)
        if not probe.is_claimed(thread_id):
            logger.info(f"Session {thread_id}/{thread_id_session} has no live owner")
            return thread_id, thread_id_session
        logger.debug(f"Session {thread_id} is still owned, skipping")
    return "", ""
