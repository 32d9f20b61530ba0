import re
from datetime import datetime, timezone
from typing import Tuple

from pymongo.errors import DuplicateKeyError

from curequeue.constants import Role
from curequeue.errors import Conflict, InvalidInput
from curequeue.models import User
from curequeue.schemas import ProfileIn, RegisterIn
from curequeue.security import hash_password, token_for, verify_password
from curequeue.utils.logger import get_logger

logger = get_logger("auth")

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 6


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


async def register(payload: RegisterIn) -> User:
    """Create an account. Emails are unique regardless of case."""
    if not (payload.name or "").strip():
        raise InvalidInput("Name is required")
    if not (payload.email or "").strip():
        raise InvalidInput("Email is required")
    if not payload.password:
        raise InvalidInput("Password is required")
    if len(payload.password) < MIN_PASSWORD_LENGTH:
        raise InvalidInput(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    email = normalize_email(payload.email)
    if not EMAIL_PATTERN.match(email):
        raise InvalidInput("Please enter a valid email address")
    if payload.role == Role.ADMIN:
        raise InvalidInput("Admin accounts cannot be self-registered")

    if await User.find_one(User.email == email):
        raise Conflict("Email already registered")

    user = User(
        name=payload.name.strip(),
        email=email,
        password_hash=hash_password(payload.password),
        phone=(payload.phone or "").strip() or None,
        address=(payload.address or "").strip() or None,
        role=payload.role,
    )
    try:
        await user.insert()
    except DuplicateKeyError:
        raise Conflict("Email already registered")
    logger.info(f"Registered {user.role.value} {user.id}")
    return user


async def login(*, email: str, password: str) -> Tuple[str, User]:
    """Check credentials and return (access_token, user)."""
    user = await User.find_one(User.email == normalize_email(email))
    if not user or not verify_password(password, user.password_hash):
        logger.info(f"Failed login for {normalize_email(email)}")
        raise InvalidInput("Invalid credentials")
    return token_for(user), user


async def update_profile(user: User, payload: ProfileIn) -> User:
    """Update name, email, phone and address of the caller's own account."""
    if payload.name is not None:
        if not payload.name.strip():
            raise InvalidInput("Name is required")
        user.name = payload.name.strip()

    if payload.email is not None:
        email = normalize_email(payload.email)
        if not EMAIL_PATTERN.match(email):
            raise InvalidInput("Please enter a valid email address")
        if email != user.email:
            taken = await User.find_one(User.email == email, User.id != user.id)
            if taken:
                raise Conflict("Email already in use")
            user.email = email

    if payload.phone is not None:
        user.phone = payload.phone.strip() or None
    if payload.address is not None:
        user.address = payload.address.strip() or None

    user.updated_at = datetime.now(timezone.utc)
    try:
        await user.save()
    except DuplicateKeyError:
        raise Conflict("Email already in use")
    logger.info(f"Profile updated for {user.id}")
    return user
