"""
memory.py
---------
Session checkpointing.

Checkpoints are LangGraph's: the compiled graph saves the state after every
superstep under `thread_id = session_id`. `make_checkpointer` picks the saver
(in-memory or SQLite). `SessionLocks` serializes runs over the same session
id; different sessions never wait on each other.

Checkpoints live for the process lifetime (memory) or until the database
file is removed (sqlite); there is no eviction.
"""
from __future__ import annotations

import atexit
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List

from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.checkpoint.memory import MemorySaver
from langgraph.checkpoint.sqlite import SqliteSaver

logger = logging.getLogger(__name__)


def _open_sqlite(db_path: str) -> SqliteSaver:
    """
    `SqliteSaver.from_conn_string` is a context manager. Enter it once and keep
    the connection open for the process lifetime.
    """
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    ctx = SqliteSaver.from_conn_string(db_path)
    saver = ctx.__enter__()
    atexit.register(ctx.__exit__, None, None, None)
    return saver


def make_checkpointer(backend: str, db_path: str) -> BaseCheckpointSaver:
    """Return the LangGraph checkpointer selected by CHECKPOINT_BACKEND."""
    if backend == "sqlite":
        logger.info("Using SQLite checkpointer at %s", db_path)
        return _open_sqlite(db_path)
    if backend != "memory":
        raise ValueError(f"Unknown checkpoint backend: {backend!r}")
    return MemorySaver()


class SessionLocks:
    """
    One lock per session id, held from before the checkpoint is read until the
    run's last checkpoint is written. A lock only exists while some run holds
    it or waits for it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        # session_id -> [lock, number of runs holding or waiting]
        self._locks: Dict[str, List] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @contextmanager
    def hold(self, session_id: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.setdefault(session_id, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[session_id]
