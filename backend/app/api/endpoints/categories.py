from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session, joinedload
from typing import List
from app.core.database import get_db
from app.core.auth import get_current_admin
from app.api.validation import paginate, PageParam, LimitParam
from app.models.category import Category
from app.models.generation_schedule import GenerationSchedule
from app.models.post import Post
from app.models.topic import Topic
from app.models.user import User
from app.schemas.category import (
    Category as CategorySchema,
    CategoryCreate,
    CategoryUpdate,
)
from app.schemas.post import PostList
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_unique(db: Session, name: str = None, slug: str = None, exclude_id: int = None):
    """Raise 400 when another category already uses the name or slug."""
    if name is not None:
        query = db.query(Category).filter(Category.name == name)
        if exclude_id is not None:
            query = query.filter(Category.id != exclude_id)
        if query.first():
            raise HTTPException(
                status_code=400, detail="Category with this name already exists"
            )
    if slug is not None:
        query = db.query(Category).filter(Category.slug == slug)
        if exclude_id is not None:
            query = query.filter(Category.id != exclude_id)
        if query.first():
            raise HTTPException(
                status_code=400, detail="Category with this slug already exists"
            )


@router.get("", response_model=List[CategorySchema])
def get_categories(db: Session = Depends(get_db)):
    """Get all categories sorted by name."""
    return db.query(Category).order_by(Category.name).all()


@router.get("/{category_id}/posts", response_model=PostList)
def get_category_posts(
    category_id: int,
    page: int = PageParam,
    limit: int = LimitParam,
    db: Session = Depends(get_db),
):
    """Paginated posts of one category, newest first."""
    category = db.query(Category).filter(Category.id == category_id).first()
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")

    query = (
        db.query(Post)
        .options(joinedload(Post.author), joinedload(Post.category))
        .filter(Post.category_id == category_id)
        .order_by(Post.published_at.desc(), Post.id.desc())
    )
    posts, pagination = paginate(query, page, limit)
    return {"posts": posts, "pagination": pagination}


@router.get("/{slug}", response_model=CategorySchema)
def get_category(slug: str, db: Session = Depends(get_db)):
    category = db.query(Category).filter(Category.slug == slug.lower()).first()
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


@router.post("", response_model=CategorySchema, status_code=status.HTTP_201_CREATED)
def create_category(
    category: CategoryCreate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """Create a new category."""
    _check_unique(db, name=category.name, slug=category.slug)

    db_category = Category(**category.model_dump())
    db.add(db_category)
    db.commit()
    db.refresh(db_category)
    logger.info(f"Category created: {db_category.slug}")
    return db_category


@router.put("/{category_id}", response_model=CategorySchema)
def update_category(
    category_id: int,
    category_update: CategoryUpdate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """Update a category."""
    category = db.query(Category).filter(Category.id == category_id).first()
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")

    update_data = category_update.model_dump(exclude_unset=True, exclude_none=True)
    _check_unique(
        db,
        name=update_data.get("name"),
        slug=update_data.get("slug"),
        exclude_id=category.id,
    )

    for key, value in update_data.items():
        setattr(category, key, value)

    db.commit()
    db.refresh(category)
    return category


@router.delete("/{category_id}")
def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """
    Delete a category.

    Refused while any post still belongs to the category, so posts never
    point at a missing category.
    """
    category = db.query(Category).filter(Category.id == category_id).first()
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")

    post_count = db.query(Post).filter(Post.category_id == category_id).count()
    if post_count:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot delete category with {post_count} associated posts",
        )

    in_use = (
        db.query(Topic.id).filter(Topic.category_id == category_id).first()
        or db.query(GenerationSchedule.id)
        .filter(GenerationSchedule.category_id == category_id)
        .first()
    )
    if in_use:
        raise HTTPException(
            status_code=400,
            detail="Cannot delete category referenced by topics or generation schedules",
        )

    db.delete(category)
    db.commit()
    logger.info(f"Category deleted: {category_id}")

    return {"message": "Category deleted successfully"}
