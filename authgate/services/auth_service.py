import logging
from dataclasses import dataclass

from authgate.core.security import TokenError, create_access_token, decode_access_token, verify_password
from authgate.db import InMemoryDB
from authgate.services.sessions import Session, SessionRegistry, round_half_up, to_iso

"""AuthService: login, bearer-token gating and session lifecycle payloads"""


logger = logging.getLogger(__name__)


class AuthError(Exception):
    message = "Authentication failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class InvalidCredentialsError(AuthError):
    message = "Invalid email or password"


class InvalidTokenError(AuthError):
    message = "Invalid or expired token"


class SessionExpiredError(AuthError):
    message = "Session expired or not found. Please login again."


@dataclass
class AuthContext:
    token: str
    claims: dict
    session: Session


class AuthService:
    def __init__(self, db: InMemoryDB, registry: SessionRegistry):
        self.db = db
        self.registry = registry

    def login(self, emailid: str, password: str, ip_address: str | None = None) -> dict:
        """
        Checks the password against the user store, issues a token and opens a session for it.
        """
        if not emailid or not password:
            raise ValueError("EmailID and password are required")

        user = self.db.find_user(emailid)
        if not user or not verify_password(password, user.get("password_hash")):
            logger.warning(f"Login failed: emailid={emailid}")
            raise InvalidCredentialsError()

        token, expires_at = create_access_token(
            str(user["id"]),
            extra={"emailid": user["emailid"], "username": user["username"]},
        )
        session = self.registry.create_session(token, user, ip_address)

        logger.info(f"Login success: user_id={user['id']}, session_id={session.session_id}")
        return {
            "success": True,
            "message": "Login successful",
            "token": token,
            "session_id": session.session_id,
            "expires_at": to_iso(expires_at),
            "user": {
                "id": user["id"],
                "emailid": user["emailid"],
                "username": user["username"],
            },
        }

    def verify_token(self, token: str, allow_expired: bool = False) -> dict:
        """Stage 1: signature and expiry embedded in the token itself."""
        try:
            return decode_access_token(token, verify_exp=not allow_expired)
        except TokenError as e:
            logger.warning(f"Token rejected: {e.reason}")
            raise InvalidTokenError() from e

    def authorize(self, token: str) -> AuthContext:
        """
        Gate for every protected operation.
        Token verification, then session liveness, then the activity refresh; a failure
        in either check returns before anything is mutated.
        """
        claims = self.verify_token(token)

        if self.registry.validate_session(token) is None:
            logger.warning(f"Session rejected: no live session for user_id={claims.get('sub')}")
            raise SessionExpiredError()

        # Re-checked under the same lock as the refresh: a logout or sweep may have won the race
        session = self.registry.touch_session(token)
        if session is None:
            logger.warning(f"Session rejected: removed during request for user_id={claims.get('sub')}")
            raise SessionExpiredError()

        return AuthContext(token=token, claims=claims, session=session)

    def logout(self, token: str) -> dict:
        # Only the signature must hold: a session can outlive its token's own expiry
        self.verify_token(token, allow_expired=True)
        result = self.registry.logout(token)
        response = {"success": result.success, "message": result.message}
        if result.data is not None:
            response["data"] = result.data
        return response

    def logout_all(self, user_id: int) -> dict:
        result = self.registry.logout_all_user_sessions(user_id)
        return {"success": result.success, "message": result.message, "count": result.count}

    def session_status(self, session: Session) -> dict:
        """Status of `session` as captured by the gate, before this request refreshed it."""
        timeout_minutes = self.registry.timeout_minutes
        inactivity = self.registry.inactivity_minutes(session)
        return {
            "session_id": session.session_id,
            "user_id": session.user_id,
            "emailid": session.emailid,
            "username": session.username,
            "is_active": session.is_active,
            "created_at": to_iso(session.created_at),
            "last_activity_at": to_iso(session.last_activity_at),
            "inactivity_minutes": inactivity,
            "remaining_minutes_before_logout": max(round_half_up(timeout_minutes - inactivity), 0),
            "timeout_minutes": timeout_minutes,
        }

    def list_sessions(self) -> dict:
        stats = self.registry.stats()
        return {
            "statistics": {
                "active_sessions_count": stats.active_sessions_count,
                "total_sessions_count": stats.total_sessions_count,
                "inactivity_timeout_minutes": stats.inactivity_timeout_minutes,
            },
            "sessions": self.registry.list_active_sessions(),
        }
