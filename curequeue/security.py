from datetime import datetime, timedelta, timezone
from typing import List, Optional, Callable

from beanie import PydanticObjectId as OID
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError, ExpiredSignatureError
from passlib.context import CryptContext

from curequeue.config import get_settings
from curequeue.constants import Role
from curequeue.errors import Forbidden, Unauthenticated
from curequeue.models.user import User

settings = get_settings()

# tokenUrl is only used by the Swagger UI
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

# ------------------------ Password hashing helpers ------------------------

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Check a password; False when there is no stored hash."""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


# ------------------------ JWT helpers ------------------------


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode an access token, raising Unauthenticated on any defect."""
    try:
        payload = jwt.decode(
            token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM]
        )
    except ExpiredSignatureError:
        raise Unauthenticated("Token expired, please login again")
    except JWTError:
        raise Unauthenticated("Token is not valid")
    if payload.get("type") != "access":
        raise Unauthenticated("Token is not valid")
    return payload


def token_for(user: User) -> str:
    return create_access_token({"sub": str(user.id), "role": user.role.value})


async def get_current_user(
    token: str = Depends(oauth2_scheme),
) -> User:
    """Decode the bearer token and fetch the user from MongoDB.
    Raises 401 if the token is invalid, expired, or the user is gone.
    """
    payload = decode_token(token)
    user_id: str | None = payload.get("sub")
    if user_id is None:
        raise Unauthenticated("Token is not valid")

    try:
        user = await User.get(OID(user_id))
    except Exception:
        user = None
    if not user:
        raise Unauthenticated("User not found, authorization denied")
    return user


# ------------------------ RBAC helpers ------------------------


def require_roles(allowed: List[Role]) -> Callable:
    """FastAPI dependency factory to enforce role-based access.
    Usage: Depends(require_roles([Role.ADMIN, Role.DOCTOR]))
    """

    async def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise Forbidden()
        return current_user

    return checker
