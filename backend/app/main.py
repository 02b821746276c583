from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
from typing import Optional
from app.core.config import settings
from app.core.database import engine, Base
from app.core.logging_config import (
    setup_logging,
    CorrelationIdMiddleware,
    log_security_event,
)
from app.core.rate_limit import limiter
from app.api.endpoints import (
    auth,
    authors,
    users,
    categories,
    posts,
    comments,
    topics,
    generation,
    cron,
    seo,
)
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
import logging

setup_logging(debug=settings.DEBUG)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    # Cover images are served from external CDNs
    "Content-Security-Policy": (
        "default-src 'self'; "
        "img-src 'self' data: https:; "
        "style-src 'self' 'unsafe-inline'; "
        "frame-ancestors 'none';"
    ),
}


def hsts_header() -> Optional[str]:
    """Strict-Transport-Security value, or None outside production."""
    if not (settings.ENABLE_HSTS and settings.is_production):
        return None
    directives = [f"max-age={settings.HSTS_MAX_AGE}"]
    if settings.HSTS_INCLUDE_SUBDOMAINS:
        directives.append("includeSubDomains")
    if settings.HSTS_PRELOAD:
        directives.append("preload")
    return "; ".join(directives)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app):
        super().__init__(app)
        self.headers = dict(SECURITY_HEADERS)
        hsts = hsts_header()
        if hsts:
            self.headers["Strict-Transport-Security"] = hsts

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers.update(self.headers)
        return response


def include_routers(application: FastAPI) -> None:
    """Mount every API router on an application."""
    application.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    application.include_router(users.router, prefix="/api/users", tags=["users"])
    application.include_router(authors.router, prefix="/api/authors", tags=["authors"])
    application.include_router(
        categories.router, prefix="/api/categories", tags=["categories"]
    )
    application.include_router(posts.router, prefix="/api/posts", tags=["posts"])
    application.include_router(
        comments.router, prefix="/api/comments", tags=["comments"]
    )
    application.include_router(topics.router, prefix="/api/topics", tags=["topics"])
    application.include_router(
        generation.router, prefix="/api/generation", tags=["generation"]
    )
    application.include_router(cron.router, prefix="/api/cron", tags=["cron"])
    # Path used by the hosting platform's cron configuration
    application.include_router(cron.router, prefix="/cron", include_in_schema=False)
    application.include_router(seo.router, tags=["seo"])


@asynccontextmanager
async def lifespan(application: FastAPI):
    log_security_event(
        event_type="app.startup",
        message=f"Ledgerline {VERSION} starting (production={settings.is_production})",
        event_category="system",
        production=settings.is_production,
        debug=settings.DEBUG,
        generation_enabled=settings.generation_enabled,
        cron_enabled=bool(settings.CRON_SECRET),
    )

    if settings.SECRET_KEY == "change-me-in-production" and settings.is_production:
        logger.critical("SECRET_KEY is still the default value; tokens can be forged")
    if not settings.CRON_SECRET:
        logger.warning("CRON_SECRET is not set; scheduled generation cannot be triggered")
    if not settings.generation_enabled:
        logger.warning("OPENAI_API_KEY is not set; scheduled generation will fail")

    Base.metadata.create_all(bind=engine)
    yield
    logger.info("Ledgerline shutting down")


app = FastAPI(
    title="Ledgerline - Finance & Crypto Blog",
    description="Blog API with scheduled AI-assisted post generation",
    version=VERSION,
    lifespan=lifespan,
)

# Tags each request and its log lines with X-Correlation-ID
app.add_middleware(CorrelationIdMiddleware)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    content = {"detail": "Internal server error"}
    if settings.DEBUG:
        content["error"] = str(exc)
    return JSONResponse(status_code=500, content=content)


include_routers(app)


@app.get("/")
def root():
    return {
        "name": "Ledgerline",
        "version": VERSION,
        "description": "Finance & Crypto Blog API",
    }


@app.get("/health")
def health_check():
    return {"status": "healthy"}
