"""Authentication endpoints (API JWT)."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from lastmile.core.security import create_access_token, get_current_user, get_password_hash, verify_password
from lastmile.db.session import get_db
from lastmile.models.user import User
from lastmile.schemas.auth import LoginRequest, RegisterRequest, TokenResponse
from lastmile.schemas.common import ok
from lastmile.schemas.user import serialize_user
from lastmile.services.user_service import create_user, get_user_by_email, touch_last_login

router: APIRouter = APIRouter()
logger = logging.getLogger(__name__)


def _token_for(user: User) -> TokenResponse:
    return TokenResponse(access_token=create_access_token(data={"sub": str(user.id), "role": user.role}))


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)) -> dict[str, Any]:
    profile = payload.model_dump(exclude={"name", "email", "password", "role"})
    user = create_user(
        db=db,
        email=payload.email,
        name=payload.name,
        hashed_password=get_password_hash(payload.password),
        role=payload.role,
        profile=profile,
    )
    logger.info("[AUTH] Registered %s account user_id=%s", user.role, user.id)
    token = _token_for(user)
    return ok(
        {"user": serialize_user(user).model_dump(mode="json"), **token.model_dump()},
        "User registered successfully",
    )


@router.post("/login")
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> dict[str, Any]:
    user: User | None = get_user_by_email(db=db, email=payload.email)
    if user is None or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect email or password")
    if not user.is_active:
        logger.info("[AUTH] Login refused for inactive user_id=%s", user.id)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account is deactivated")
    touch_last_login(db, user)
    token = _token_for(user)
    return ok({"user": serialize_user(user).model_dump(mode="json"), **token.model_dump()}, "Login successful")


@router.get("/me")
def me(current_user: User = Depends(get_current_user)) -> dict[str, Any]:
    return ok(serialize_user(current_user).model_dump(mode="json"))
