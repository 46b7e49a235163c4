# FastAPI application entry point: builds the session registry and
# services once, registers the API routes and runs the idle-session sweeper.

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI

from authgate.core.config import settings
from authgate.db import InMemoryDB
from authgate.dependencies.auth import require_session
from authgate.routes.auth import router as auth_router
from authgate.routes.qrcode import router as qrcode_router
from authgate.services.auth_service import AuthContext, AuthService
from authgate.services.qr_service import QRService
from authgate.services.sessions import SessionRegistry

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL, logging.INFO))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    registry: SessionRegistry = app.state.registry
    registry.start_cleanup()
    try:
        yield
    finally:
        registry.stop_cleanup()


def create_app(registry: SessionRegistry | None = None, db: InMemoryDB | None = None) -> FastAPI:
    if registry is None:
        registry = SessionRegistry(
            inactivity_timeout_seconds=settings.inactivity_timeout_seconds,
            cleanup_interval_seconds=settings.cleanup_interval_seconds,
        )
    if db is None:
        db = InMemoryDB()

    app = FastAPI(title=settings.APP_NAME, version="1.0.0", lifespan=lifespan)
    app.state.registry = registry
    app.state.db = db
    app.state.auth_service = AuthService(db, registry)
    app.state.qr_service = QRService(db)

    app.include_router(auth_router)
    app.include_router(qrcode_router)

    @app.get("/")
    def root():
        return {"message": "API is running", "version": "1.0.0"}

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.get("/protected")
    def protected(ctx: AuthContext = Depends(require_session)):
        return {"message": "Access granted to protected resource", "user": ctx.claims}

    @app.get("/profile")
    def profile(ctx: AuthContext = Depends(require_session)):
        s = ctx.session
        return {
            "message": "User profile",
            "user": {"id": s.user_id, "emailid": s.emailid, "username": s.username},
        }

    return app


app = create_app()
