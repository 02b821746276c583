from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session
from typing import Optional
from app.core.config import settings
from app.core.database import get_db
from app.core.logging_config import log_security_event, request_audit_fields
from app.core.rate_limit import limiter
from app.api.validation import utcnow
from app.schemas.common import serialize_utc
from app.schemas.generation import CronRunSummary
from app.services.content_generator import ContentGenerator, get_content_generator
from app.services.generation_processor import GenerationProcessor
import logging
import secrets

logger = logging.getLogger(__name__)

router = APIRouter()


def verify_cron_secret(
    request: Request, x_cron_secret: Optional[str] = Header(None)
) -> None:
    """
    Require the shared X-Cron-Secret header.

    An unset CRON_SECRET refuses every caller.
    """
    expected = settings.CRON_SECRET
    if (
        not expected
        or not x_cron_secret
        or not secrets.compare_digest(
            x_cron_secret.encode("utf-8"), expected.encode("utf-8")
        )
    ):
        log_security_event(
            event_type="cron.denied",
            message="Cron request rejected: missing or invalid secret",
            level=logging.WARNING,
            **request_audit_fields(request),
            event_category="cron",
            secret_configured=bool(expected),
        )
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized")


@router.get(
    "/daily-generate",
    response_model=CronRunSummary,
    dependencies=[Depends(verify_cron_secret)],
)
@limiter.limit("10/minute")
async def daily_generate(
    request: Request,
    db: Session = Depends(get_db),
    generator: ContentGenerator = Depends(get_content_generator),
):
    """Generate posts for every pending schedule that is due."""
    if not generator.is_configured:
        logger.warning("Content generator is not configured; due schedules will fail")

    processor = GenerationProcessor(db, generator)
    try:
        summary = await processor.process_due_schedules()
    except Exception as e:
        logger.exception(f"Scheduled generation run failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process scheduled generation",
        )

    log_security_event(
        event_type="cron.generation.completed",
        message=summary["message"],
        **request_audit_fields(request),
        event_category="cron",
        processed=summary["processed"],
        succeeded=summary["success"],
        failed=summary["failure"],
    )

    return summary


@router.get("/health", dependencies=[Depends(verify_cron_secret)])
def cron_health():
    """Lets the external scheduler check that its secret is accepted."""
    return {
        "status": "ok",
        "timestamp": serialize_utc(utcnow()),
        "generation_enabled": settings.generation_enabled,
    }
