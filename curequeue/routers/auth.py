from fastapi import APIRouter, Depends, Request

from curequeue.models import User
from curequeue.rate_limit import AUTH_LIMIT, limiter
from curequeue.schemas import LoginIn, ProfileIn, RegisterIn, Token
from curequeue.security import get_current_user
from curequeue.services import auth_service
from curequeue.utils.presenters import user_out

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", status_code=201)
@limiter.limit(AUTH_LIMIT)
async def register(request: Request, payload: RegisterIn):
    """Create a patient or doctor account.
    Rate limited per IP (AUTH_RATE_LIMIT).
    """
    user = await auth_service.register(payload)
    return {"msg": "User registered successfully", "user": user_out(user)}


@router.post("/login", response_model=Token)
@limiter.limit(AUTH_LIMIT)
async def login(request: Request, payload: LoginIn):
    """Email + password login returning a bearer token.
    Rate limited per IP (AUTH_RATE_LIMIT).
    """
    access_token, user = await auth_service.login(email=payload.email, password=payload.password)
    return Token(access_token=access_token, user=user_out(user))


@router.get("/me")
async def me(current: User = Depends(get_current_user)):
    return {"user": user_out(current)}


@router.put("/profile")
async def update_profile(payload: ProfileIn, current: User = Depends(get_current_user)):
    user = await auth_service.update_profile(current, payload)
    return {"msg": "Profile updated successfully", "user": user_out(user)}
