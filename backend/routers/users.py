from typing import Dict, Optional

from fastapi import APIRouter, Cookie, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import (
    REFRESH_COOKIE,
    SessionClaims,
    clear_session_cookies,
    current_admin,
    current_claims,
    issue_session,
    refresh_session,
    set_access_cookie,
    set_session_cookies,
)
from db.database import get_async_session
from schemas.users import ChangePasswordRequest, LoginRequest, PasswordReset, RegisterRequest
from services import users as user_service

router = APIRouter()


@router.post("/login", response_model=Dict)
async def login(payload: LoginRequest, response: Response, db: AsyncSession = Depends(get_async_session)):
    """Verify name/password and set the access and refresh cookies."""
    tokens = await issue_session(db, payload.name, payload.password)
    set_session_cookies(response, tokens)
    return {"success": True}


@router.post("/refresh", response_model=Dict)
async def refresh(
    response: Response,
    refresh_token: Optional[str] = Cookie(default=None, alias=REFRESH_COOKIE),
    db: AsyncSession = Depends(get_async_session),
):
    """Mint a new access cookie from the refresh cookie (401 missing, 403 invalid/expired)."""
    access_token = await refresh_session(db, refresh_token)
    set_access_cookie(response, access_token)
    return {"success": True}


@router.post("/register", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, db: AsyncSession = Depends(get_async_session)):
    """Register a user with the default (non-admin) role."""
    user = await user_service.create_user(
        db, payload.name, payload.password, display_name=payload.display_name
    )
    return {
        "success": True,
        "message": "User registered",
        "user": {"id": user.id, "name": user.name},
    }


@router.post("/logout", response_model=Dict)
async def logout(response: Response):
    """Clear both cookies. Tokens are stateless and stay valid until they expire."""
    clear_session_cookies(response)
    return {"success": True}


@router.get("/user", response_model=Dict)
async def get_current_user(
    claims: SessionClaims = Depends(current_claims),
    db: AsyncSession = Depends(get_async_session),
):
    user = await user_service.get_user(db, claims.user_id)
    return user.to_schema


@router.post("/change_password", response_model=Dict)
async def change_password(
    payload: ChangePasswordRequest,
    claims: SessionClaims = Depends(current_claims),
    db: AsyncSession = Depends(get_async_session),
):
    """Change the caller's own password; the current password must match."""
    await user_service.change_password(db, claims.user_id, payload.old_password, payload.new_password)
    return {"success": True, "message": "Password changed"}


@router.put("/users/{user_id}/password", response_model=Dict)
async def reset_user_password(
    user_id: int,
    payload: PasswordReset,
    admin: SessionClaims = Depends(current_admin),
    db: AsyncSession = Depends(get_async_session),
):
    """Set any user's password without the old one (admin only)."""
    await user_service.force_set_password(db, user_id, payload.password)
    return {"success": True, "message": "User password changed"}
