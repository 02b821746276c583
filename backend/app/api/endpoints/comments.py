from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session, joinedload
from typing import List
from app.core.database import get_db
from app.core.auth import get_current_admin
from app.models.comment import Comment
from app.models.user import User
from app.schemas.comment import Comment as CommentSchema, PendingComment
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/pending", response_model=List[PendingComment])
def get_pending_comments(
    db: Session = Depends(get_db), current_admin: User = Depends(get_current_admin)
):
    """Comments waiting for moderation, newest first."""
    return (
        db.query(Comment)
        .options(joinedload(Comment.post))
        .filter(Comment.is_approved == False)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
        .all()
    )


@router.patch("/{comment_id}/approve", response_model=CommentSchema)
def approve_comment(
    comment_id: int,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """Make a single comment publicly visible."""
    comment = db.query(Comment).filter(Comment.id == comment_id).first()
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")

    comment.is_approved = True
    db.commit()
    db.refresh(comment)
    logger.info(f"Comment {comment_id} approved by user {current_admin.id}")
    return comment


@router.delete("/{comment_id}")
def delete_comment(
    comment_id: int,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """
    Delete a comment.

    Deleting a top-level comment also deletes its replies; deleting a reply
    removes only that reply.
    """
    comment = db.query(Comment).filter(Comment.id == comment_id).first()
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")

    deleted_replies = 0
    if comment.parent_id is None:
        deleted_replies = (
            db.query(Comment)
            .filter(Comment.parent_id == comment.id)
            .delete(synchronize_session=False)
        )

    db.delete(comment)
    db.commit()
    logger.info(f"Comment {comment_id} deleted with {deleted_replies} replies")

    return {"message": "Comment deleted successfully", "deleted_replies": deleted_replies}
