from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse, Response
from sqlalchemy.orm import Session, joinedload
from app.core.config import settings
from app.core.database import get_db
from app.api.validation import validate_string_length
from app.models.category import Category
from app.models.post import Post
from app.services.seo import (
    generate_sitemap,
    generate_robots_txt,
    home_meta_tags,
    post_meta_tags,
    category_meta_tags,
)

router = APIRouter()


@router.get("/sitemap.xml")
def get_sitemap(db: Session = Depends(get_db)):
    posts = db.query(Post).order_by(Post.published_at.desc()).all()
    categories = db.query(Category).order_by(Category.name).all()
    sitemap = generate_sitemap(posts, categories, settings.SITE_URL)
    return Response(content=sitemap, media_type="application/xml")


@router.get("/robots.txt", response_class=PlainTextResponse)
def get_robots_txt():
    return generate_robots_txt(settings.SITE_URL)


@router.get("/meta-tags/{slug}")
def get_meta_tags(slug: str, db: Session = Depends(get_db)):
    """Meta tags for the home page, a post or a category, looked up by slug."""
    validate_string_length(slug, "slug", max_length=200)
    slug = slug.lower()

    if slug == "home":
        return home_meta_tags(settings.SITE_URL)

    post = (
        db.query(Post)
        .options(joinedload(Post.author), joinedload(Post.category))
        .filter(Post.slug == slug)
        .first()
    )
    if post:
        return post_meta_tags(post, settings.SITE_URL)

    category = db.query(Category).filter(Category.slug == slug).first()
    if category:
        return category_meta_tags(category, settings.SITE_URL)

    raise HTTPException(status_code=404, detail="Page not found")
