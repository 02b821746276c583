from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session, joinedload
from typing import List, Optional
from slugify import slugify
from app.core.database import get_db
from app.core.auth import get_current_admin, get_current_user_optional
from app.core.rate_limit import limiter
from app.api.validation import paginate, utcnow, PageParam, LimitParam, CategoryIdParam
from app.models.category import Category
from app.models.comment import Comment
from app.models.post import Post
from app.models.user import User
from app.schemas.comment import (
    Comment as CommentSchema,
    CommentCreate,
    CommentWithReplies,
)
from app.schemas.post import (
    Post as PostSchema,
    PostCreate,
    PostUpdate,
    PostList,
    PostWithComments,
)
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


def _post_query(db: Session):
    return db.query(Post).options(joinedload(Post.author), joinedload(Post.category))


def _get_post_or_404(db: Session, post_id: int) -> Post:
    post = _post_query(db).filter(Post.id == post_id).first()
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


def _ensure_category(db: Session, category_id: int) -> Category:
    category = db.query(Category).filter(Category.id == category_id).first()
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


def _ensure_slug_free(db: Session, slug: str, exclude_id: Optional[int] = None):
    query = db.query(Post.id).filter(Post.slug == slug)
    if exclude_id is not None:
        query = query.filter(Post.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=400, detail="Post with this slug already exists")


def build_comment_tree(db: Session, post_id: int) -> List[CommentWithReplies]:
    """
    Approved comments of a post with their approved replies.

    Top-level comments are newest first; replies under each are oldest first.
    """
    comments = (
        db.query(Comment)
        .filter(Comment.post_id == post_id, Comment.is_approved == True)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
        .all()
    )

    replies = {}
    for comment in comments:
        if comment.parent_id is not None:
            replies.setdefault(comment.parent_id, []).append(
                CommentSchema.model_validate(comment)
            )

    top_level = [c for c in comments if c.parent_id is None]
    top_level.reverse()

    return [
        CommentWithReplies(
            **CommentSchema.model_validate(comment).model_dump(),
            replies=replies.get(comment.id, []),
        )
        for comment in top_level
    ]


@router.get("", response_model=PostList)
def get_posts(
    page: int = PageParam,
    limit: int = LimitParam,
    category_id: Optional[int] = CategoryIdParam,
    db: Session = Depends(get_db),
):
    """Paginated posts, newest first, optionally restricted to one category."""
    query = _post_query(db)
    if category_id is not None:
        query = query.filter(Post.category_id == category_id)
    query = query.order_by(Post.published_at.desc(), Post.id.desc())

    posts, pagination = paginate(query, page, limit)
    return {"posts": posts, "pagination": pagination}


@router.get("/{slug}", response_model=PostWithComments)
def get_post(slug: str, db: Session = Depends(get_db)):
    """A single post with its approved, threaded comments."""
    post = _post_query(db).filter(Post.slug == slug).first()
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")

    return PostWithComments(
        **PostSchema.model_validate(post).model_dump(),
        comments=build_comment_tree(db, post.id),
    )


@router.post("", response_model=PostSchema, status_code=status.HTTP_201_CREATED)
def create_post(
    post_in: PostCreate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """Publish a post written by the current admin."""
    _ensure_category(db, post_in.category_id)

    slug = slugify(post_in.slug or post_in.title, max_length=200)
    if not slug:
        raise HTTPException(status_code=400, detail="Could not derive a slug from the title")
    _ensure_slug_free(db, slug)

    data = post_in.model_dump(exclude={"slug"})
    post = Post(**data, slug=slug, author_id=current_admin.id, published_at=utcnow())
    db.add(post)
    db.commit()
    logger.info(f"Post created: {slug}")

    return _get_post_or_404(db, post.id)


@router.put("/{post_id}", response_model=PostSchema)
def update_post(
    post_id: int,
    post_update: PostUpdate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """Partially update a post."""
    post = _get_post_or_404(db, post_id)
    update_data = post_update.model_dump(exclude_unset=True, exclude_none=True)

    if "category_id" in update_data:
        _ensure_category(db, update_data["category_id"])

    if "slug" in update_data:
        update_data["slug"] = slugify(update_data["slug"], max_length=200)
        if not update_data["slug"]:
            raise HTTPException(status_code=400, detail="Invalid slug")
        _ensure_slug_free(db, update_data["slug"], exclude_id=post.id)

    for key, value in update_data.items():
        setattr(post, key, value)

    db.commit()
    db.expire_all()
    return _get_post_or_404(db, post_id)


@router.delete("/{post_id}")
def delete_post(
    post_id: int,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """Delete a post together with all of its comments."""
    post = db.query(Post).filter(Post.id == post_id).first()
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")

    db.delete(post)
    db.commit()
    logger.info(f"Post deleted: {post_id}")

    return {"message": "Post deleted successfully"}


@router.post(
    "/{post_id}/comments",
    response_model=CommentSchema,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit("10/minute")
def create_comment(
    request: Request,
    post_id: int,
    comment_in: CommentCreate,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user_optional),
):
    """
    Add a comment or reply to a post.

    Comments from admins are approved immediately; everything else waits for
    moderation. A reply to a reply is attached to the top-level comment.
    """
    post = db.query(Post).filter(Post.id == post_id).first()
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")

    parent_id = comment_in.parent_id
    if parent_id is not None:
        parent = db.query(Comment).filter(Comment.id == parent_id).first()
        if not parent:
            raise HTTPException(status_code=404, detail="Parent comment not found")
        if parent.post_id != post.id:
            raise HTTPException(
                status_code=400, detail="Parent comment belongs to a different post"
            )
        if parent.parent_id is not None:
            parent_id = parent.parent_id

    comment = Comment(
        post_id=post.id,
        parent_id=parent_id,
        user_id=current_user.id if current_user else None,
        content=comment_in.content,
        author_name=comment_in.author_name,
        author_email=comment_in.author_email,
        is_approved=bool(current_user and current_user.is_admin),
    )
    db.add(comment)
    db.commit()
    db.refresh(comment)
    return comment


@router.get("/{post_id}/comments", response_model=List[CommentWithReplies])
def get_post_comments(post_id: int, db: Session = Depends(get_db)):
    """Approved comments of a post as a one-level thread."""
    post = db.query(Post.id).filter(Post.id == post_id).first()
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return build_comment_tree(db, post_id)
