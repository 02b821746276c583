from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from jose.exceptions import ExpiredSignatureError
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.core.config import settings
from app.models.user import User
from typing import Optional, Tuple
from datetime import datetime, timedelta, timezone
import bcrypt
import logging
import uuid

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

ALGORITHM = "HS256"

AUTH_COOKIE = "auth_token"
REFRESH_COOKIE = "refresh_token"

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


def hash_password(password: str) -> str:
    """Hash a plain-text password with a fresh bcrypt salt."""
    hashed = bcrypt.hashpw(password.encode("utf-8")[:BCRYPT_MAX_BYTES], bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain-text password against a stored bcrypt hash."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(
            password.encode("utf-8")[:BCRYPT_MAX_BYTES], password_hash.encode("utf-8")
        )
    except ValueError:
        logger.warning("Stored password hash could not be parsed")
        return False


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _encode(data: dict, token_type: str, lifetime: timedelta) -> str:
    issued_at = datetime.now(timezone.utc)
    claims = dict(data)
    # JWT "sub" must be a string
    if "sub" in claims:
        claims["sub"] = str(claims["sub"])
    claims.update(
        {
            "exp": issued_at + lifetime,
            "iat": issued_at,
            "jti": str(uuid.uuid4()),
            "type": token_type,
        }
    )
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=ALGORITHM)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a short-lived access token.

    Args:
        data: Claims to sign, normally just {"sub": user_id}
        expires_delta: Lifetime override; defaults to ACCESS_TOKEN_EXPIRE_MINUTES
    """
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _encode(data, "access", lifetime)


def create_refresh_token(data: dict) -> str:
    """Create a refresh token, valid for REFRESH_TOKEN_EXPIRE_DAYS."""
    return _encode(data, "refresh", timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))


def create_token_pair(user_id: int) -> Tuple[str, str]:
    """Access and refresh tokens for a user who just logged in or registered."""
    claims = {"sub": user_id}
    return create_access_token(claims), create_refresh_token(claims)


def decode_token(token: str, token_type: str = "access") -> dict:
    """
    Verify a token's signature, expiry and type.

    Raises:
        HTTPException: 401 for expired, malformed or wrong-type tokens
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        logger.info("Rejected expired %s token", token_type)
        raise _unauthorized("Token has expired")
    except JWTError as e:
        logger.warning(f"JWT decode error: {e}")
        raise _unauthorized("Could not validate credentials")

    if payload.get("type") != token_type:
        logger.warning(
            f"Token type mismatch: expected {token_type}, got {payload.get('type')}"
        )
        raise _unauthorized("Invalid token type")

    return payload


def load_token_user(payload: dict, db: Session) -> User:
    """The active user named by a decoded token's subject."""
    try:
        user_id = int(payload["sub"])
    except KeyError:
        raise _unauthorized("Could not validate credentials")
    except (ValueError, TypeError):
        raise _unauthorized("Invalid user ID in token")

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise _unauthorized("User not found")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")
    return user


def _request_token(
    request: Request, credentials: Optional[HTTPAuthorizationCredentials]
) -> Optional[str]:
    # The cookie wins over the Authorization header
    token = request.cookies.get(AUTH_COOKIE)
    if not token and credentials:
        token = credentials.credentials
    return token


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the caller from the auth cookie or a bearer token."""
    token = _request_token(request, credentials)
    if not token:
        raise _unauthorized("Not authenticated")
    return load_token_user(decode_token(token), db)


async def get_current_user_optional(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Like get_current_user, but guests and bad tokens yield None."""
    if not _request_token(request, credentials):
        return None
    try:
        return await get_current_user(request, credentials, db)
    except HTTPException:
        return None


async def get_current_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized as admin",
        )
    return current_user
