"""Sitemap, robots.txt and social meta tag generation."""

from datetime import datetime
from typing import Iterable, List, Optional
from xml.sax.saxutils import escape

SITE_NAME = "Finance & Crypto Blog"
HOME_TITLE = "Finance & Crypto Blog | Latest Market News and Analysis"
HOME_DESCRIPTION = (
    "Stay up-to-date with the latest finance and cryptocurrency news, "
    "market analysis, and investment strategies."
)
DEFAULT_AUTHOR = "Staff Writer"
DEFAULT_SECTION = "Finance"
DEFAULT_IMAGE_PATH = "/og-image.jpg"

SITEMAP_NAMESPACE = "http://www.sitemaps.org/schemas/sitemap/0.9"


def _url_entry(
    loc: str, changefreq: str, priority: float, lastmod: Optional[datetime] = None
) -> str:
    lines = ["  <url>", f"    <loc>{escape(loc)}</loc>"]
    if lastmod is not None:
        lines.append(f"    <lastmod>{lastmod.replace(microsecond=0).isoformat()}Z</lastmod>")
    lines.append(f"    <changefreq>{changefreq}</changefreq>")
    lines.append(f"    <priority>{priority:.1f}</priority>")
    lines.append("  </url>")
    return "\n".join(lines)


def generate_sitemap(posts: Iterable, categories: Iterable, base_url: str) -> str:
    """
    Build sitemap.xml for the public site.

    Args:
        posts: Post rows; slug and updated_at (or published_at) are used
        categories: Category rows; slug is used
        base_url: Public site URL without trailing slash

    Returns:
        The sitemap document as a string
    """
    base_url = base_url.rstrip("/")
    entries = [
        _url_entry(base_url, "daily", 1.0),
        _url_entry(f"{base_url}/blog", "daily", 0.9),
    ]

    for category in categories:
        entries.append(_url_entry(f"{base_url}/category/{category.slug}", "weekly", 0.8))

    for post in posts:
        lastmod = post.updated_at or post.published_at
        entries.append(
            _url_entry(f"{base_url}/post/{post.slug}", "monthly", 0.7, lastmod=lastmod)
        )

    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<urlset xmlns="{SITEMAP_NAMESPACE}">\n'
        + "\n".join(entries)
        + "\n</urlset>\n"
    )


def generate_robots_txt(base_url: str) -> str:
    return (
        "# https://www.robotstxt.org/robotstxt.html\n"
        "User-agent: *\n"
        "Allow: /\n"
        "Disallow: /api/\n"
        "Disallow: /admin/\n"
        "\n"
        f"Sitemap: {base_url.rstrip('/')}/sitemap.xml\n"
    )


def generate_meta_tags(
    title: str,
    description: str,
    url: str,
    image_url: str,
    page_type: str = "website",
    published_at: Optional[datetime] = None,
    author_name: Optional[str] = None,
    section: Optional[str] = None,
) -> dict:
    """
    Title, meta and link tags for a page.

    Article pages additionally get article:* Open Graph properties.
    """
    meta: List[dict] = [
        {"name": "description", "content": description},
        {"property": "og:site_name", "content": SITE_NAME},
        {"property": "og:title", "content": title},
        {"property": "og:description", "content": description},
        {"property": "og:url", "content": url},
        {"property": "og:image", "content": image_url},
        {"property": "og:type", "content": page_type},
        {"name": "twitter:card", "content": "summary_large_image"},
        {"name": "twitter:title", "content": title},
        {"name": "twitter:description", "content": description},
        {"name": "twitter:image", "content": image_url},
    ]

    if page_type == "article":
        if published_at is not None:
            meta.append(
                {
                    "property": "article:published_time",
                    "content": published_at.replace(microsecond=0).isoformat() + "Z",
                }
            )
        meta.append({"property": "article:author", "content": author_name or DEFAULT_AUTHOR})
        meta.append({"property": "article:section", "content": section or DEFAULT_SECTION})

    return {
        "title": title,
        "meta": meta,
        "link": [{"rel": "canonical", "href": url}],
    }


def home_meta_tags(base_url: str) -> dict:
    return generate_meta_tags(
        title=HOME_TITLE,
        description=HOME_DESCRIPTION,
        url=f"{base_url}/",
        image_url=f"{base_url}{DEFAULT_IMAGE_PATH}",
    )


def post_meta_tags(post, base_url: str) -> dict:
    return generate_meta_tags(
        title=post.title,
        description=post.excerpt,
        url=f"{base_url}/post/{post.slug}",
        image_url=post.cover_image,
        page_type="article",
        published_at=post.published_at,
        author_name=post.author.username if post.author else None,
        section=post.category.name if post.category else None,
    )


def category_meta_tags(category, base_url: str) -> dict:
    return generate_meta_tags(
        title=f"{category.name} | {SITE_NAME}",
        description=category.description or f"Latest {category.name} articles",
        url=f"{base_url}/category/{category.slug}",
        image_url=f"{base_url}{DEFAULT_IMAGE_PATH}",
    )
