from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from typing import List
from app.core.database import get_db
from app.core.auth import get_current_user, get_current_admin, hash_password
from app.core.logging_config import log_admin_action
from app.models.comment import Comment
from app.models.generation_schedule import GenerationSchedule
from app.models.post import Post
from app.models.topic import Topic
from app.models.user import User
from app.schemas.user import (
    User as UserSchema,
    UserProfileUpdate,
    AdminUserUpdate,
)
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


def _ensure_unique(db: Session, user_id: int, username: str = None, email: str = None):
    """Reject a username or email already owned by another account."""
    if email is not None:
        taken = db.query(User).filter(User.email == email, User.id != user_id).first()
        if taken:
            raise HTTPException(status_code=400, detail="Email already in use")
    if username is not None:
        taken = (
            db.query(User).filter(User.username == username, User.id != user_id).first()
        )
        if taken:
            raise HTTPException(status_code=400, detail="Username already taken")


@router.get("/profile", response_model=UserSchema)
def get_profile(current_user: User = Depends(get_current_user)):
    """Get the profile of the logged-in user."""
    return current_user


@router.put("/profile", response_model=UserSchema)
def update_profile(
    profile_update: UserProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update username, email or password of the logged-in user."""
    update_data = profile_update.model_dump(exclude_unset=True, exclude_none=True)
    _ensure_unique(
        db,
        current_user.id,
        username=update_data.get("username"),
        email=update_data.get("email"),
    )

    password = update_data.pop("password", None)
    if password:
        current_user.password_hash = hash_password(password)

    for key, value in update_data.items():
        setattr(current_user, key, value)

    db.commit()
    db.refresh(current_user)
    return current_user


@router.get("", response_model=List[UserSchema])
def list_users(
    db: Session = Depends(get_db), current_admin: User = Depends(get_current_admin)
):
    """List all accounts, newest first."""
    return db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()


@router.get("/{user_id}", response_model=UserSchema)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.put("/{user_id}", response_model=UserSchema)
def update_user(
    user_id: int,
    user_update: AdminUserUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """Update an account, including its admin and active flags."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    update_data = user_update.model_dump(exclude_unset=True, exclude_none=True)

    if user.id == current_admin.id and (
        update_data.get("is_admin") is False or update_data.get("is_active") is False
    ):
        raise HTTPException(
            status_code=400, detail="You cannot remove your own admin access"
        )

    _ensure_unique(
        db, user.id, username=update_data.get("username"), email=update_data.get("email")
    )

    for key, value in update_data.items():
        setattr(user, key, value)

    db.commit()
    db.refresh(user)

    log_admin_action(
        request,
        current_admin,
        "admin.user.updated",
        f"User {user.id} updated by admin",
        target_user_id=user.id,
        changed_fields=sorted(update_data),
    )
    return user


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """
    Delete an account.

    Accounts that authored posts cannot be deleted. Comments, topics and
    schedules that reference the account are kept and detached from it.
    """
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if user.id == current_admin.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")

    if db.query(Post.id).filter(Post.author_id == user.id).first():
        raise HTTPException(
            status_code=400, detail="Cannot delete a user who has authored posts"
        )

    db.query(Comment).filter(Comment.user_id == user.id).update(
        {Comment.user_id: None}, synchronize_session=False
    )
    db.query(Topic).filter(Topic.user_id == user.id).update(
        {Topic.user_id: None}, synchronize_session=False
    )
    db.query(GenerationSchedule).filter(GenerationSchedule.author_id == user.id).update(
        {GenerationSchedule.author_id: None}, synchronize_session=False
    )
    db.delete(user)
    db.commit()

    log_admin_action(
        request,
        current_admin,
        "admin.user.deleted",
        f"User {user_id} deleted by admin",
        target_user_id=user_id,
    )
    return {"message": "User deleted successfully"}
