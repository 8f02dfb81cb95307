"""
Server-side session storage.

A session binds an opaque session id to a snapshot of the user taken at login
time. Entries expire after a fixed TTL. Two backends are provided: Redis for
normal deployments and an in-process table for tests and single-process
development. The store is created at application startup and handed to
request handlers through the ``get_session_store`` dependency.
"""
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Tuple

import redis
from fastapi import Request
from pydantic import BaseModel

from .config import Settings
from .exceptions import Forbidden
from .security import UserRole

logger = logging.getLogger(__name__)


class SessionData(BaseModel):
    id: int
    username: str
    role: UserRole
    name: str
    email: str
    specialization: Optional[str] = None


def authorize(session: SessionData, required_role: UserRole) -> None:
    """Require an exact role match; roles do not inherit from one another."""
    if session.role != required_role:
        raise Forbidden(f"Access denied. Required role: {required_role.value}")


class SessionStore(ABC):
    """Interface shared by the session backends."""

    def __init__(self, ttl_seconds: int):
        self.ttl_seconds = ttl_seconds

    @abstractmethod
    def save(self, session_id: str, data: SessionData) -> None:
        ...

    @abstractmethod
    def load(self, session_id: str) -> Optional[SessionData]:
        ...

    @abstractmethod
    def delete(self, session_id: str) -> None:
        ...


class RedisSessionStore(SessionStore):
    key_prefix = "session:"

    def __init__(self, client: redis.Redis, ttl_seconds: int):
        super().__init__(ttl_seconds)
        self.client = client

    def _key(self, session_id: str) -> str:
        return f"{self.key_prefix}{session_id}"

    def save(self, session_id: str, data: SessionData) -> None:
        self.client.setex(self._key(session_id), self.ttl_seconds, data.model_dump_json())

    def load(self, session_id: str) -> Optional[SessionData]:
        raw = self.client.get(self._key(session_id))
        if raw is None:
            return None
        return SessionData.model_validate_json(raw)

    def delete(self, session_id: str) -> None:
        self.client.delete(self._key(session_id))


class MemorySessionStore(SessionStore):
    """Session table kept in process memory, with lazy TTL eviction."""

    def __init__(self, ttl_seconds: int, clock: Callable[[], float] = time.monotonic):
        super().__init__(ttl_seconds)
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[float, SessionData]] = {}

    def save(self, session_id: str, data: SessionData) -> None:
        now = self._clock()
        with self._lock:
            self._evict_expired(now)
            self._entries[session_id] = (now + self.ttl_seconds, data)

    def load(self, session_id: str) -> Optional[SessionData]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(session_id)
            if entry is None:
                return None
            expires_at, data = entry
            if expires_at <= now:
                del self._entries[session_id]
                return None
            return data

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._entries.pop(session_id, None)

    def __len__(self) -> int:
        with self._lock:
            self._evict_expired(self._clock())
            return len(self._entries)

    def _evict_expired(self, now: float) -> None:
        expired = [sid for sid, (expires_at, _) in self._entries.items() if expires_at <= now]
        for sid in expired:
            del self._entries[sid]


def build_session_store(settings: Settings) -> SessionStore:
    """Create the session store selected by ``SESSION_BACKEND``."""
    backend = settings.SESSION_BACKEND.lower()
    if backend == "memory":
        logger.info("Using in-memory session store")
        return MemorySessionStore(settings.SESSION_TTL_SECONDS)
    if backend == "redis":
        logger.info("Using Redis session store")
        client = redis.from_url(settings.REDIS_URL, decode_responses=True)
        return RedisSessionStore(client, settings.SESSION_TTL_SECONDS)
    raise ValueError(f"Unknown SESSION_BACKEND: {settings.SESSION_BACKEND}")


# Session store dependency
def get_session_store(request: Request) -> SessionStore:
    """Get the session store created at application startup."""
    return request.app.state.session_store
