import random
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional

from .session import GameSession


class SessionRegistry:
    """Keeps one GameSession per table id and remembers which table each
    connection handle sits at.

    Sessions are not thread-safe; callers hold ``lock_for(table_id)`` while
    issuing commands so a table sees one command at a time. Table locks are
    counted and dropped once no caller holds or waits on them.
    """

    def __init__(self, rng_factory: Optional[Callable[[], random.Random]] = None):
        self._rng_factory = rng_factory or random.Random
        self._lock = threading.Lock()
        self._sessions: Dict[str, GameSession] = {}
        # table id -> [lock, number of callers holding or waiting]
        self._locks: Dict[str, List] = {}
        self._handle_tables: Dict[str, str] = {}

    @contextmanager
    def lock_for(self, table_id: str) -> Iterator[None]:
        with self._lock:
            entry = self._locks.get(table_id)
            if entry is None:
                entry = [threading.RLock(), 0]
                self._locks[table_id] = entry
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._lock:
                entry[1] -= 1
                if entry[1] == 0 and self._locks.get(table_id) is entry:
                    del self._locks[table_id]

    def get(self, table_id: str) -> Optional[GameSession]:
        return self._sessions.get(table_id)

    def get_or_create(self, table_id: str) -> GameSession:
        with self._lock:
            session = self._sessions.get(table_id)
            if session is None:
                session = GameSession(table_id=table_id, rng=self._rng_factory())
                self._sessions[table_id] = session
            return session

    def bind(self, handle: str, table_id: str) -> None:
        self._handle_tables[handle] = table_id

    def unbind(self, handle: str) -> Optional[str]:
        return self._handle_tables.pop(handle, None)

    def table_for(self, handle: str) -> Optional[str]:
        return self._handle_tables.get(handle)

    def discard(self, table_id: str) -> bool:
        """Forget a table once nobody is seated at it."""
        with self._lock:
            session = self._sessions.get(table_id)
            if session is None or session.get_players():
                return False
            del self._sessions[table_id]
            return True

    def clear(self, rng_factory: Optional[Callable[[], random.Random]] = None) -> None:
        with self._lock:
            self._sessions.clear()
            self._locks.clear()
            self._handle_tables.clear()
            if rng_factory is not None:
                self._rng_factory = rng_factory


registry = SessionRegistry()
