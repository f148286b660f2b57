"""
Credential and token helpers.

Passwords are hashed with bcrypt through passlib. Identity tokens are HS256 JWTs
whose only claim besides ``exp`` is ``sub`` (the user id); the role is always read
from the stored user, never from the token.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class TokenError(Exception):
    pass


class TokenExpired(TokenError):
    pass


class TokenInvalid(TokenError):
    pass


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except (ValueError, TypeError):
        # unknown or corrupt hash format
        return False


def create_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    if expires_delta is None:
        expires_delta = timedelta(days=settings.jwt_expire_days)
    exp = datetime.now(timezone.utc) + expires_delta
    payload = {"sub": str(user_id), "exp": exp}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> str:
    """Return the user id carried by ``token``.

    Raises TokenExpired for a correctly signed token past its expiry and
    TokenInvalid for everything else.
    """
    try:
        data = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise TokenExpired("Token expired.")
    except JWTError:
        raise TokenInvalid("Invalid token.")
    user_id = data.get("sub")
    if not user_id:
        raise TokenInvalid("Invalid token.")
    return user_id
