"""Password hashing, bearer tokens and the authorization dependencies."""

import hashlib
import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings
from .errors import Forbidden, InvalidToken, Unauthorized
from .models.user import User

_HASH_SCHEME = "pbkdf2_sha256"

security = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    iterations = settings.password_hash_iterations
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), iterations)
    return f"{_HASH_SCHEME}${iterations}${salt}${digest.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    try:
        scheme, iterations, salt, expected = password_hash.split("$")
    except ValueError:
        return False
    if scheme != _HASH_SCHEME:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), int(iterations))
    return hmac.compare_digest(digest.hex(), expected)


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    email: str


def issue_token(
    user_id: int,
    email: str,
    expires: Optional[timedelta] = None,
    secret: Optional[str] = None,
) -> str:
    """Sign a bearer token for the user, valid 24 hours unless told otherwise."""
    now = datetime.now(timezone.utc)
    expires = expires if expires is not None else timedelta(minutes=settings.access_token_expire_minutes)
    payload = {
        "sub": str(user_id),
        "userId": user_id,
        "email": email,
        "iat": now,
        "exp": now + expires,
    }
    return jwt.encode(payload, secret or settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str, secret: Optional[str] = None) -> TokenClaims:
    """Return the claims embedded in ``token``; never a live user record."""
    try:
        payload = jwt.decode(
            token,
            secret or settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp"]},
        )
    except jwt.PyJWTError as exc:
        raise InvalidToken() from exc

    user_id = payload.get("userId")
    email = payload.get("email")
    if not isinstance(user_id, int) or not isinstance(email, str):
        raise InvalidToken()
    return TokenClaims(user_id=user_id, email=email)


def get_store(request: Request):
    return request.app.state.store


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    store=Depends(get_store),
) -> User:
    if credentials is None:
        raise Unauthorized()
    claims = verify_token(credentials.credentials)

    # Deactivation must apply to tokens that are already issued.
    user = store.get_user(claims.user_id)
    if user is None or not user.actif:
        raise Unauthorized("Token invalide ou utilisateur inactif")
    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise Forbidden("Accès réservé aux administrateurs")
    return current_user


def verify_user(user_id: int, current_user: User = Depends(get_current_user)) -> User:
    """Allow the request when the caller is ``user_id`` or an administrator."""
    if current_user.id != user_id and not current_user.is_admin:
        raise Forbidden()
    return current_user
