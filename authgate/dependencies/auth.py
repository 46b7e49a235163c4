from fastapi import Depends, Header, HTTPException, Request, status

from authgate.services.auth_service import AuthContext, AuthError, AuthService
from authgate.services.qr_service import QRService


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_qr_service(request: Request) -> QRService:
    return request.app.state.qr_service


def get_current_token(authorization: str | None = Header(default=None)) -> str:
    if not authorization:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No token provided")

    # Token format: "Bearer <token>"; a bare token is accepted too
    token = authorization[7:] if authorization.startswith("Bearer ") else authorization
    token = token.strip()
    if not token:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No token provided")
    return token


def require_session(
    token: str = Depends(get_current_token),
    auth: AuthService = Depends(get_auth_service),
) -> AuthContext:
    try:
        return auth.authorize(token)
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )
