import asyncio
from abc import ABC, abstractmethod
from typing import Dict

from session.session import Session


class SessionStore(ABC):
    """Lookup of editing sessions by Telegram user id."""

    @abstractmethod
    def get(self, user_id: int) -> Session:
        """Return the user's session, creating it on first contact."""
        pass

    @abstractmethod
    def lock(self, user_id: int) -> asyncio.Lock:
        """Lock serializing event handling for one user."""
        pass

    def close(self) -> None:
        """Release resources held by the store."""
        pass


class InMemorySessionStore(SessionStore):
    """Process-local sessions; they live as long as the process does."""

    def __init__(self):
        self._sessions: Dict[int, Session] = {}
        self._locks: Dict[int, asyncio.Lock] = {}

    def get(self, user_id: int) -> Session:
        session = self._sessions.get(user_id)
        if session is None:
            session = self._sessions[user_id] = Session(user_id)
        return session

    def lock(self, user_id: int) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    def __len__(self) -> int:
        return len(self._sessions)

    def close(self) -> None:
        """Release every held artifact."""
        for session in self._sessions.values():
            session.reset()
