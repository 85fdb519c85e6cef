"""
Per-conversation mutual exclusion for the message pipeline.

The pipeline does read-modify-write on conversation state with no conflict
detection, so at most one run per conversation may be in flight. This
registry serializes runs inside one process; multi-worker deployments need a
shared lock (e.g. a database advisory lock) instead.

Entries are reference counted and dropped as soon as nobody holds or waits
on them, so the registry only grows with concurrent conversations.
"""
import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Dict


class ConversationLocks:
    """Lazily created lock per conversation id."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}
        # holders + waiters per conversation
        self._refs: Dict[str, int] = defaultdict(int)

    @contextmanager
    def hold(self, conversation_id: str):
        with self._guard:
            lock = self._locks.setdefault(conversation_id, threading.Lock())
            self._refs[conversation_id] += 1
        try:
            with lock:
                yield
        finally:
            self._release(conversation_id)

    def _release(self, conversation_id: str):
        with self._guard:
            self._refs[conversation_id] -= 1
            if self._refs[conversation_id] == 0:
                del self._refs[conversation_id]
                del self._locks[conversation_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


conversation_locks = ConversationLocks()
