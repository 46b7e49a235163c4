# In-memory login session registry (creation, activity tracking,
# logout, and idle-timeout expiry).

import logging
import math
import secrets
import threading
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Set

logger = logging.getLogger(__name__)


def to_iso(ts: float) -> str:
    """Epoch seconds -> ISO-8601 UTC with millisecond precision, e.g. 2026-02-25T10:30:45.123Z"""
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass
class Session:
    session_id: str
    token: str
    user_id: int
    emailid: str
    username: str
    created_at: float
    last_activity_at: float
    ip_address: str | None = None
    is_active: bool = True


@dataclass
class LogoutResult:
    success: bool
    message: str
    data: dict | None = None


@dataclass
class BulkLogoutResult:
    count: int
    message: str
    success: bool = True


@dataclass
class SessionStats:
    active_sessions_count: int
    total_sessions_count: int
    inactivity_timeout_minutes: float


class SessionSweeper:
    """
    Background thread that evicts idle sessions every `interval` seconds.
    Stopping sets the event and joins the thread, so no sweep runs after stop() returns.
    """

    def __init__(self, registry: "SessionRegistry", interval: float):
        self.registry = registry
        self.interval = interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="session-sweeper", daemon=True)
        self._thread.start()
        logger.info(f"Session cleanup process started (interval={self.interval}s)")

    def stop(self) -> None:
        if self._thread is None:
            return
        self._stop.set()
        self._thread.join()
        self._thread = None
        logger.info("Session cleanup process stopped")

    def _loop(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.registry.sweep()
            except Exception as e:  # noqa: BLE001
                logger.error(f"Session sweep failed: {type(e).__name__}: {e}")


class SessionRegistry:
    def __init__(
        self,
        inactivity_timeout_seconds: float = 15 * 60,
        cleanup_interval_seconds: float = 5 * 60,
        clock: Callable[[], float] = time.time,
    ):
        self.inactivity_timeout_seconds = inactivity_timeout_seconds
        self.cleanup_interval_seconds = cleanup_interval_seconds
        self._clock = clock
        self._lock = threading.Lock()
        # token -> Session
        self._sessions: Dict[str, Session] = {}
        # user_id -> {token, ...}
        self._by_user: Dict[int, Set[str]] = {}
        self._sweeper = SessionSweeper(self, cleanup_interval_seconds)

    def _now(self) -> float:
        return self._clock()

    @staticmethod
    def _new_session_id(now: float) -> str:
        return f"sess_{int(now * 1000)}_{secrets.token_hex(5)}"

    def _remove(self, session: Session) -> None:
        # Caller holds the lock
        session.is_active = False
        self._sessions.pop(session.token, None)
        tokens = self._by_user.get(session.user_id)
        if tokens is not None:
            tokens.discard(session.token)
            if not tokens:
                del self._by_user[session.user_id]

    def create_session(self, token: str, user: dict, ip_address: str | None = None) -> Session:
        now = self._now()
        session = Session(
            session_id=self._new_session_id(now),
            token=token,
            user_id=user["id"],
            emailid=user.get("emailid", ""),
            username=user.get("username", ""),
            created_at=now,
            last_activity_at=now,
            ip_address=ip_address,
        )

        with self._lock:
            previous = self._sessions.get(token)
            if previous is not None:
                # A token maps to at most one live session: the newer entry wins
                self._remove(previous)
                logger.warning(f"Session replaced - SessionID: {previous.session_id} superseded by {session.session_id}")
            self._sessions[token] = session
            self._by_user.setdefault(session.user_id, set()).add(token)

        logger.info(f"Session created - SessionID: {session.session_id}, User: {session.emailid}")
        return replace(session)

    def validate_session(self, token: str) -> Optional[Session]:
        with self._lock:
            session = self._sessions.get(token)
            if session is None or not session.is_active:
                return None
            return replace(session)

    def update_activity(self, token: str) -> bool:
        with self._lock:
            session = self._sessions.get(token)
            if session is None or not session.is_active:
                return False
            session.last_activity_at = max(self._now(), session.created_at)
            return True

    def touch_session(self, token: str) -> Optional[Session]:
        """
        Liveness check and activity refresh in one critical section.
        Returns the session as it was before the refresh, or None if it is gone.
        """
        with self._lock:
            session = self._sessions.get(token)
            if session is None or not session.is_active:
                return None
            snapshot = replace(session)
            session.last_activity_at = max(self._now(), session.created_at)
            return snapshot

    def get_session_by_token(self, token: str) -> Optional[Session]:
        with self._lock:
            session = self._sessions.get(token)
            return replace(session) if session is not None else None

    def logout(self, token: str) -> LogoutResult:
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return LogoutResult(success=False, message="Session not found or already logged out")
            now = self._now()
            self._remove(session)

        duration = round_half_up(now - session.created_at)
        data = {
            "session_id": session.session_id,
            "user_id": session.user_id,
            "emailid": session.emailid,
            "username": session.username,
            "logout_time": to_iso(now),
            "session_duration_seconds": duration,
        }
        logger.info(f"Session logged out - SessionID: {session.session_id}, User: {session.emailid}, Duration: {duration}s")
        return LogoutResult(success=True, message="Logout successful", data=data)

    def logout_all_user_sessions(self, user_id: int) -> BulkLogoutResult:
        count = 0
        with self._lock:
            for token in list(self._by_user.get(user_id, ())):
                session = self._sessions.get(token)
                if session is not None and session.is_active:
                    self._remove(session)
                    count += 1

        logger.info(f"All sessions logged out for user {user_id} - Count: {count}")
        return BulkLogoutResult(count=count, message=f"{count} session(s) logged out")

    def sweep(self) -> int:
        """Evicts every active session idle for longer than the inactivity timeout."""
        removed = 0
        with self._lock:
            now = self._now()
            for session in list(self._sessions.values()):
                if not session.is_active:
                    continue
                idle = now - session.last_activity_at
                if idle > self.inactivity_timeout_seconds:
                    self._remove(session)
                    removed += 1
                    logger.info(
                        f"Session auto-logout (inactivity) - SessionID: {session.session_id}, "
                        f"User: {session.emailid}, Inactivity: {round_half_up(idle)}s"
                    )

        if removed:
            logger.info(f"[Cleanup] Removed {removed} inactive session(s)")
        return removed

    def list_active_sessions(self) -> list[dict]:
        with self._lock:
            now = self._now()
            return [
                {
                    "session_id": s.session_id,
                    "user_id": s.user_id,
                    "emailid": s.emailid,
                    "username": s.username,
                    "created_at": to_iso(s.created_at),
                    "last_activity_at": to_iso(s.last_activity_at),
                    "inactivity_minutes": round_half_up((now - s.last_activity_at) / 60),
                    "ip_address": s.ip_address,
                }
                for s in self._sessions.values()
                if s.is_active
            ]

    def stats(self) -> SessionStats:
        with self._lock:
            active = sum(1 for s in self._sessions.values() if s.is_active)
            total = len(self._sessions)
        return SessionStats(
            active_sessions_count=active,
            total_sessions_count=total,
            inactivity_timeout_minutes=self.timeout_minutes,
        )

    @property
    def timeout_minutes(self) -> int | float:
        minutes = self.inactivity_timeout_seconds / 60
        return int(minutes) if float(minutes).is_integer() else minutes

    def inactivity_minutes(self, session: Session) -> int:
        return round_half_up((self._now() - session.last_activity_at) / 60)

    def start_cleanup(self) -> None:
        self._sweeper.start()

    def stop_cleanup(self) -> None:
        self._sweeper.stop()

    @property
    def cleanup_running(self) -> bool:
        return self._sweeper.running

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()
            self._by_user.clear()
        logger.info("All sessions cleared")
