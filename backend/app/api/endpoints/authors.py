from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
from app.core.database import get_db
from app.models.post import Post
from app.models.user import User
from app.schemas.user import UserPublic

router = APIRouter()


def _authors_query(db: Session):
    """Accounts that have written at least one post."""
    return db.query(User).filter(User.id.in_(db.query(Post.author_id)))


@router.get("", response_model=List[UserPublic])
def get_authors(db: Session = Depends(get_db)):
    return _authors_query(db).order_by(User.username).all()


@router.get("/{author_id}", response_model=UserPublic)
def get_author(author_id: str, db: Session = Depends(get_db)):
    """Public profile of one author. Readers without posts are not exposed."""
    try:
        author_id = int(author_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid author ID")

    author = _authors_query(db).filter(User.id == author_id).first()
    if author is None:
        raise HTTPException(status_code=404, detail="Author not found")
    return author
