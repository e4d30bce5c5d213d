"""
DDD Service Backend - Authentication API
Version: 1.1.1

Changelog:
v1.1.1 (2026-10-19): Anonymous sessions are stored only once their state changes
v1.1.0 (2026-10-12): Session object persisted through SessionStore instead
                      of client-side flags
v1.0.0 (2026-09-28): Initial admin password login

The session id travels in the X-Session-Id header. is_admin selects the
admin interface; is_authenticated is granted only by the admin password and
guards every management route.
"""

from fastapi import APIRouter, HTTPException, Depends, Header
from pydantic import BaseModel
from typing import Optional
import logging
import secrets

from ddd_backend.config import settings
from ddd_backend.services.session_store import AppSession, SessionStore

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


class LoginRequest(BaseModel):
    password: str


def get_session_store() -> SessionStore:
    return SessionStore()


def current_session(x_session_id: Optional[str] = Header(None),
                    store: SessionStore = Depends(get_session_store)) -> AppSession:
    """Session named by the header, or a new anonymous one"""
    session = store.load(x_session_id)
    if session is None:
        session = AppSession()
    return session


def require_admin(session: AppSession = Depends(current_session)) -> AppSession:
    """Dependency for management routes"""
    if not session.is_authenticated:
        raise HTTPException(status_code=401, detail="Authentication required")
    return session


@router.post("/login")
async def login(data: LoginRequest,
                session: AppSession = Depends(current_session),
                store: SessionStore = Depends(get_session_store)):
    """Authenticate with the admin password"""
    if not secrets.compare_digest(data.password, settings.ADMIN_PASSWORD):
        logger.warning(f"Failed login for session {session.session_id}")
        raise HTTPException(status_code=401, detail="Invalid password")

    session.is_authenticated = True
    session.is_admin = True
    store.save(session)
    logger.info(f"Session {session.session_id} authenticated")
    return session.model_dump()


@router.post("/logout")
async def logout(session: AppSession = Depends(current_session),
                 store: SessionStore = Depends(get_session_store)):
    store.delete(session.session_id)
    return {"success": True, "message": "Logged out"}


@router.get("/session")
async def get_session(session: AppSession = Depends(current_session)):
    """Current session; an unknown or missing id yields a fresh anonymous one"""
    return session.model_dump()


@router.post("/toggle-admin")
async def toggle_admin(session: AppSession = Depends(current_session),
                       store: SessionStore = Depends(get_session_store)):
    """Switch between the employee and admin interfaces"""
    if session.is_authenticated:
        raise HTTPException(status_code=400, detail="Log out before switching interface")
    session.is_admin = not session.is_admin
    store.save(session)
    return session.model_dump()
