"""User registration, login and API key authentication.

Passwords are stored as bcrypt hashes. Login issues a fresh opaque API key
and stores only its SHA-256 digest, so a leaked table cannot be replayed.
Issuing a new key invalidates the previous one.
"""

import hashlib
import secrets
from typing import Optional

import bcrypt
import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import AuthenticationError, ConflictError, ValidationError
from app.models.user import User, UserRole

log = structlog.get_logger(__name__)

BCRYPT_ROUNDS = 12


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bool(bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8")))
    except ValueError:
        # Malformed stored hash
        return False


def hash_api_key(api_key: str) -> str:
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()


async def register_user(db: AsyncSession, username: str, password: str, role: str) -> User:
    """Create a user. Caller-supplied role must be one of UserRole.

    Raises:
        ValidationError: missing username/password or unknown role.
        ConflictError: username already taken.
    """
    username = (username or "").strip()
    if not username:
        raise ValidationError("username is mandatory")
    if not password:
        raise ValidationError("password is mandatory")
    if role not in {r.value for r in UserRole}:
        raise ValidationError(f"user role '{role}' is not valid")

    user = User(username=username, password_hash=hash_password(password), role=role)
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError(f"username '{username}' is already registered") from exc

    log.info("user_registered", username=username, role=role)
    return user


async def login(db: AsyncSession, username: str, password: str) -> str:
    """Verify credentials and return a newly issued API key."""
    result = await db.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()
    if user is None or not verify_password(password or "", user.password_hash):
        raise AuthenticationError("invalid username or password")

    api_key = secrets.token_urlsafe(32)
    await db.execute(
        update(User)
        .where(User.username == username)
        .values(api_key_hash=hash_api_key(api_key))
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    log.info("user_logged_in", username=username)
    return api_key


async def authenticate(db: AsyncSession, api_key: Optional[str]) -> User:
    if not api_key:
        raise AuthenticationError("missing API key")
    result = await db.execute(select(User).where(User.api_key_hash == hash_api_key(api_key)))
    user = result.scalar_one_or_none()
    if user is None:
        raise AuthenticationError("invalid API key")
    return user
