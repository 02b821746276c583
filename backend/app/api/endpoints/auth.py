from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime
from app.core.database import get_db
from app.core.config import settings
from app.core.auth import (
    AUTH_COOKIE,
    REFRESH_COOKIE,
    create_token_pair,
    create_access_token,
    decode_token,
    get_current_admin,
    get_current_user,
    hash_password,
    verify_password,
)
from app.core.rate_limit import limiter
from app.models.user import User
from app.schemas.user import User as UserSchema, UserCreate, UserLogin
from app.api.validation import utcnow
from app.core.logging_config import (
    log_admin_action,
    log_security_event,
    request_audit_fields,
)
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


def _cookie_kwargs() -> dict:
    kwargs = {
        "httponly": True,
        "secure": settings.COOKIE_SECURE,
        "samesite": settings.COOKIE_SAMESITE,
    }
    if settings.COOKIE_DOMAIN:
        kwargs["domain"] = settings.COOKIE_DOMAIN
    return kwargs


def set_auth_cookies(
    response: Response, access_token: str, refresh_token: Optional[str] = None
):
    """Attach the access (and optionally refresh) token as HttpOnly cookies."""
    response.set_cookie(
        AUTH_COOKIE,
        access_token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        **_cookie_kwargs(),
    )
    if refresh_token:
        response.set_cookie(
            REFRESH_COOKIE,
            refresh_token,
            max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
            **_cookie_kwargs(),
        )


def _audit(
    request: Request,
    event_type: str,
    message: str,
    user: Optional[User] = None,
    level: int = logging.INFO,
    **extra,
):
    if user is not None:
        extra.setdefault("user_id", user.id)
        extra.setdefault("username", user.username)
    log_security_event(
        event_type=event_type,
        message=message,
        level=level,
        event_category="authentication",
        **request_audit_fields(request),
        **extra,
    )


def _login_response(response: Response, message: str, user: User) -> dict:
    access_token, refresh_token = create_token_pair(user.id)
    set_auth_cookies(response, access_token, refresh_token)
    return {
        "message": message,
        "user": UserSchema.model_validate(user),
        "access_token": access_token,
        "token_type": "bearer",
    }


def _create_user(
    db: Session,
    user_in: UserCreate,
    is_admin: bool,
    conflict_status: int = status.HTTP_400_BAD_REQUEST,
    last_login: Optional[datetime] = None,
) -> User:
    if db.query(User).filter(User.email == user_in.email).first():
        raise HTTPException(status_code=conflict_status, detail="Email already in use")

    if db.query(User).filter(User.username == user_in.username).first():
        raise HTTPException(status_code=conflict_status, detail="Username already taken")

    user = User(
        username=user_in.username,
        email=user_in.email,
        password_hash=hash_password(user_in.password),
        is_admin=is_admin,
        is_active=True,
        last_login=last_login,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@router.post("/register", status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
def register(
    request: Request,
    response: Response,
    user_in: UserCreate,
    db: Session = Depends(get_db),
):
    """Create a reader account and log it in."""
    user = _create_user(db, user_in, is_admin=False, last_login=utcnow())
    logger.info(f"New user registered: {user.username}")

    _audit(request, "auth.user.created", "New reader account registered", user)
    return _login_response(response, "User registered successfully", user)


@router.post("/setup", status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
def setup_first_admin(
    request: Request,
    response: Response,
    user_in: UserCreate,
    db: Session = Depends(get_db),
):
    """
    Create the first administrator on a fresh install and log it in.

    Only allowed while no account of any kind exists.
    """
    if db.query(User.id).first() is not None:
        _audit(
            request,
            "auth.setup.refused",
            "Admin setup attempted after setup was completed",
            level=logging.WARNING,
            username=user_in.username,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Setup already completed"
        )

    user = _create_user(db, user_in, is_admin=True, last_login=utcnow())
    logger.info(f"Initial admin created: {user.username}")

    _audit(
        request,
        "auth.setup.completed",
        "Initial admin account created",
        user,
        level=logging.WARNING,
    )
    return _login_response(response, "Admin setup completed successfully", user)


@router.post("/register-admin", status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
def register_admin(
    request: Request,
    user_in: UserCreate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """Create another administrator. The caller's session is left as is."""
    user = _create_user(
        db, user_in, is_admin=True, conflict_status=status.HTTP_409_CONFLICT
    )

    log_admin_action(
        request,
        current_admin,
        "auth.admin.created",
        f"Admin account created: {user.username}",
        new_user_id=user.id,
        new_username=user.username,
    )
    return {"success": True, "user": UserSchema.model_validate(user)}


@router.post("/login")
@limiter.limit("10/minute")
def login(
    request: Request,
    response: Response,
    credentials: UserLogin,
    db: Session = Depends(get_db),
):
    """Authenticate with email and password."""
    user = db.query(User).filter(User.email == credentials.email).first()

    if not user or not verify_password(credentials.password, user.password_hash):
        _audit(
            request,
            "auth.login.failure",
            "Login failed: invalid credentials",
            level=logging.WARNING,
            username=credentials.email,
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials"
        )

    if not user.is_active:
        _audit(
            request,
            "auth.login.inactive",
            "Login refused for disabled account",
            user,
            level=logging.WARNING,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Account is disabled"
        )

    user.last_login = utcnow()
    db.commit()
    db.refresh(user)

    _audit(request, "auth.login.success", "User logged in", user)
    return _login_response(response, "Login successful", user)


@router.post("/refresh")
@limiter.limit("30/minute")
def refresh_access_token(
    request: Request, response: Response, db: Session = Depends(get_db)
):
    """Issue a new access token from the refresh cookie; the refresh token is kept."""
    refresh_token = request.cookies.get(REFRESH_COOKIE)
    if not refresh_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Refresh token not found"
        )

    payload = decode_token(refresh_token, token_type="refresh")
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token"
        )

    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        _audit(
            request,
            "auth.token.refresh_failed",
            "Token refresh refused for missing or disabled account",
            level=logging.WARNING,
            user_id=user_id,
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )

    access_token = create_access_token(data={"sub": user.id})
    set_auth_cookies(response, access_token)
    _audit(request, "auth.token.refreshed", "Access token refreshed", user)

    return {
        "message": "Token refreshed successfully",
        "access_token": access_token,
        "token_type": "bearer",
    }


@router.post("/logout")
def logout(request: Request, response: Response):
    """Clear both auth cookies. Works with an expired or missing token too."""
    auth_token = request.cookies.get(AUTH_COOKIE)
    if auth_token:
        try:
            user_id = decode_token(auth_token).get("sub")
        except HTTPException:
            user_id = None
        if user_id:
            _audit(request, "auth.logout.success", "User logged out", user_id=user_id)

    for key in (AUTH_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(key, **_cookie_kwargs())

    return {"message": "Logged out successfully"}


@router.get("/me", response_model=UserSchema)
def get_current_user_info(current_user: User = Depends(get_current_user)):
    return current_user


@router.get("/verify")
def verify_token(current_user: User = Depends(get_current_user)):
    """Confirm that the presented token is valid."""
    return {"valid": True, "user": UserSchema.model_validate(current_user)}
