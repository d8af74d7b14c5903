"""Sessions: each client gets its own MappingStore, released after a period of inactivity."""

from __future__ import annotations

import logging
import secrets
import threading
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime

from stackmap.service.mapping_store import MappingStore

logger = logging.getLogger("stackmap.sessions")

# Backs the tools that run without an explicit session (MCP over stdio)
_DEFAULT_SESSION_ID = "__default__"


class SessionNotFoundError(KeyError):
    """Raised when a session ID is not found or has expired."""


@dataclass
class SessionInfo:
    """Public session metadata (returned by list/get)."""

    session_id: str
    created_at: datetime
    last_accessed_at: datetime
    sourcemap_count: int
    metadata: dict[str, str]


@dataclass
class _Session:
    session_id: str
    store: MappingStore = field(default_factory=MappingStore)
    metadata: dict[str, str] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    # TTL is measured on the monotonic clock; the wall-clock copy is for display
    seen_mono: float = field(default_factory=time.monotonic)
    seen_wall: datetime = field(default_factory=lambda: datetime.now(UTC))

    def idle_for(self, now_mono: float) -> float:
        return now_mono - self.seen_mono

    def touch(self, now_mono: float) -> None:
        self.seen_mono = now_mono
        self.seen_wall = datetime.now(UTC)

    def info(self) -> SessionInfo:
        return SessionInfo(
            session_id=self.session_id,
            created_at=self.created_at,
            last_accessed_at=self.seen_wall,
            sourcemap_count=len(self.store.list_maps()),
            metadata=self.metadata,
        )


class SessionManager:
    """Registry of sessions that expire after ``ttl_seconds`` without use.

    Expiry is enforced twice: lazily whenever a session is looked up, and by
    a daemon thread (see :meth:`start`) sweeping every ``cleanup_interval``
    seconds so that abandoned source maps don't pile up in memory.
    """

    def __init__(self, ttl_seconds: int = 1800, cleanup_interval: float = 60) -> None:
        self._ttl = ttl_seconds
        self._cleanup_interval = cleanup_interval
        self._lock = threading.Lock()
        self._sessions: dict[str, _Session] = {}
        self._stop_event = threading.Event()
        self._sweeper: threading.Thread | None = None

    # -- lifecycle -----------------------------------------------------------

    def start(self) -> None:
        """Start the background sweeper.  Calling it twice is a no-op."""
        if self._sweeper is not None:
            return
        self._stop_event.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop, daemon=True, name="session-sweeper"
        )
        self._sweeper.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=5)
            self._sweeper = None

    # -- public API ----------------------------------------------------------

    def create_session(self, metadata: dict[str, str] | None = None) -> SessionInfo:
        # 128-bit ids
        session = _Session(session_id=secrets.token_hex(16), metadata=metadata or {})
        with self._lock:
            self._sessions[session.session_id] = session
        logger.debug("opened session %s", session.session_id)
        return session.info()

    def get_store(self, session_id: str) -> MappingStore:
        """Source map store of a live session.  Counts as activity.

        Raises :class:`SessionNotFoundError` if the session is unknown or expired.
        """
        with self._lock:
            return self._live(session_id).store

    def get_session(self, session_id: str) -> SessionInfo:
        with self._lock:
            return self._live(session_id).info()

    def close_session(self, session_id: str) -> None:
        with self._lock:
            if self._sessions.pop(session_id, None) is None:
                raise SessionNotFoundError(f"Session '{session_id}' not found")
        logger.debug("closed session %s", session_id)

    def list_sessions(self) -> list[SessionInfo]:
        """Live sessions, not counting the implicit default one."""
        return [s.info() for s in self._snapshot() if s.session_id != _DEFAULT_SESSION_ID]

    @property
    def active_count(self) -> int:
        return len(self._snapshot())

    def get_or_create_default(self) -> MappingStore:
        """Store of the implicit default session, created on first use."""
        with self._lock:
            session = self._sessions.get(_DEFAULT_SESSION_ID)
            if session is None:
                session = _Session(session_id=_DEFAULT_SESSION_ID)
                self._sessions[_DEFAULT_SESSION_ID] = session
            else:
                session.touch(time.monotonic())
            return session.store

    # -- internal ------------------------------------------------------------

    def _live(self, session_id: str) -> _Session:
        """Fetch and touch a session, evicting it if idle too long.  Lock must be held."""
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session '{session_id}' not found")
        now = time.monotonic()
        if session.idle_for(now) > self._ttl:
            del self._sessions[session_id]
            raise SessionNotFoundError(f"Session '{session_id}' has expired")
        session.touch(now)
        return session

    def _snapshot(self) -> list[_Session]:
        now = time.monotonic()
        with self._lock:
            return [s for s in self._sessions.values() if s.idle_for(now) <= self._ttl]

    def _purge_expired(self) -> None:
        now = time.monotonic()
        with self._lock:
            expired = [sid for sid, s in self._sessions.items() if s.idle_for(now) > self._ttl]
            for sid in expired:
                del self._sessions[sid]
        if expired:
            logger.info("expired %d idle session(s)", len(expired))

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(timeout=self._cleanup_interval):
            self._purge_expired()
