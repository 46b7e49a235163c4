# Security-related helpers: JWT issuing/verification and password hashing.
import time
import uuid

import jwt
from passlib.context import CryptContext

from authgate.core.config import settings

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class TokenError(Exception):
    """Raised when a bearer token fails signature, structure or expiry checks."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    try:
        return pwd_context.verify(password, hashed)
    except ValueError:
        # Unrecognised hash format
        return False


def create_access_token(sub: str, extra: dict | None = None, exp_seconds: int | None = None) -> tuple[str, int]:
    """
    Issues a signed token for `sub`.
    Returns the encoded token and its expiry as epoch seconds.
    """
    now = int(time.time())
    ttl = settings.TOKEN_TTL_SECONDS if exp_seconds is None else exp_seconds
    payload = {
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "iat": now,
        "nbf": now,
        "exp": now + ttl,
        "sub": sub,
        # Two logins within the same second must still yield distinct tokens
        "jti": uuid.uuid4().hex,
    }

    if extra:
        payload.update(extra)
    token = jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return token, payload["exp"]


def decode_access_token(token: str, verify_exp: bool = True) -> dict:
    """
    Verifies signature, issuer, audience and (unless verify_exp is False) expiry.
    Raises TokenError with a short reason on failure.
    """
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
            options={"verify_exp": verify_exp},
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenError("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise TokenError("Invalid token") from exc
