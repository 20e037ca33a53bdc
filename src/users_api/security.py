from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from users_api import config
from users_api.errors import AuthenticationError
from users_api.users import UserStore, get_user_store


_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=config.bcrypt_rounds())
_bearer = HTTPBearer(auto_error=False)


# PUBLIC_INTERFACE
def hash_password(password: str) -> str:
    """Hash a plaintext password."""
    return _pwd_context.hash(password)


# PUBLIC_INTERFACE
def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """Verify a plaintext password against a stored hash.

    Users created through the admin route carry no hash; they never match.
    """
    if not password_hash:
        return False
    try:
        return _pwd_context.verify(password, password_hash)
    except (ValueError, TypeError):
        # not a hash passlib recognises
        return False


def _create_access_token(payload: Dict[str, Any], expires_delta: timedelta) -> str:
    to_encode = payload.copy()
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.jwt_secret(), algorithm=config.jwt_algorithm())


# PUBLIC_INTERFACE
def create_user_access_token(user_id: int, email: str) -> str:
    """Create a JWT access token carrying the user's id and email."""
    return _create_access_token(
        {"sub": str(user_id), "id": user_id, "email": email},
        expires_delta=timedelta(minutes=config.jwt_exp_minutes()),
    )


# PUBLIC_INTERFACE
def decode_access_token(token: str) -> Dict[str, Any]:
    """Verify signature and expiry of a token and return its claims."""
    try:
        payload = jwt.decode(token, config.jwt_secret(), algorithms=[config.jwt_algorithm()])
    except JWTError:
        raise AuthenticationError("Invalid token")
    if not isinstance(payload.get("id"), int):
        raise AuthenticationError("Invalid token payload")
    return payload


# PUBLIC_INTERFACE
def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    store: UserStore = Depends(get_user_store),
) -> Dict[str, Any]:
    """Dependency that returns the user row named by the bearer token."""
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    user = store.get_by_id(payload["id"])
    if not user:
        raise AuthenticationError("User not found")
    return user
