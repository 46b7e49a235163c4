# Authentication-related routes: login, logout (single and bulk),
# session status and the active-session listing.

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from authgate.dependencies.auth import get_auth_service, get_current_token, require_session
from authgate.services.auth_service import AuthContext, AuthError, AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LoginReq(BaseModel):
    emailid: str = ""
    password: str = ""


class UserOut(CamelModel):
    id: int
    emailid: str
    username: str


class LoginResp(CamelModel):
    success: bool
    message: str
    token: str
    session_id: str
    expires_at: str
    user: UserOut


class LogoutData(CamelModel):
    session_id: str
    user_id: int
    emailid: str
    username: str
    logout_time: str
    session_duration_seconds: int


class LogoutResp(CamelModel):
    success: bool
    message: str
    data: LogoutData | None = None


class BulkLogoutResp(CamelModel):
    success: bool
    message: str
    count: int


class SessionStatusResp(CamelModel):
    session_id: str
    user_id: int
    emailid: str
    username: str
    is_active: bool
    created_at: str
    last_activity_at: str
    inactivity_minutes: int
    remaining_minutes_before_logout: int
    timeout_minutes: int | float


class SessionSummary(CamelModel):
    session_id: str
    user_id: int
    emailid: str
    username: str
    created_at: str
    last_activity_at: str
    inactivity_minutes: int
    ip_address: str | None = None


class SessionStatistics(CamelModel):
    active_sessions_count: int
    total_sessions_count: int
    inactivity_timeout_minutes: int | float


class SessionListResp(CamelModel):
    statistics: SessionStatistics
    sessions: list[SessionSummary]


@router.post("/login", response_model=LoginResp)
def login(req: LoginReq, request: Request, auth: AuthService = Depends(get_auth_service)):
    ip_address = request.client.host if request.client else None
    try:
        return auth.login(req.emailid, req.password, ip_address)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AuthError as e:
        raise HTTPException(status_code=401, detail=e.message)


@router.post("/logout", response_model=LogoutResp)
def logout(token: str = Depends(get_current_token), auth: AuthService = Depends(get_auth_service)):
    try:
        result = auth.logout(token)
    except AuthError as e:
        raise HTTPException(status_code=401, detail=e.message)

    if not result["success"]:
        # Reported outcome, not a fault
        return JSONResponse(status_code=404, content={"success": False, "message": result["message"]})
    return result


@router.post("/logout-all", response_model=BulkLogoutResp)
def logout_all(ctx: AuthContext = Depends(require_session), auth: AuthService = Depends(get_auth_service)):
    return auth.logout_all(ctx.session.user_id)


@router.get("/session", response_model=SessionStatusResp)
def session_status(ctx: AuthContext = Depends(require_session), auth: AuthService = Depends(get_auth_service)):
    return auth.session_status(ctx.session)


@router.get("/sessions", response_model=SessionListResp)
def list_sessions(ctx: AuthContext = Depends(require_session), auth: AuthService = Depends(get_auth_service)):
    return auth.list_sessions()
