"""Generation log service: an append-only trail of article operations.

Usage in the service layer:
    generation_log.log(db, user_id="abc", action="generate", status="started",
                       article_id="...", metadata={"topic": "..."})
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import sqlalchemy.exc
from sqlalchemy.orm import Session

from ..models import GenerationLog

logger = logging.getLogger(__name__)


def log(
    db: Session,
    user_id: str,
    action: str,
    status: str,
    article_id: Optional[str] = None,
    ai_provider: Optional[str] = None,
    duration_ms: Optional[int] = None,
    error_message: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> None:
    """Write a log entry. Never raises; failures are logged and rolled back."""
    try:
        entry = GenerationLog(
            user_id=user_id,
            article_id=article_id,
            action=action,
            status=status,
            ai_provider=ai_provider,
            duration_ms=duration_ms,
            error_message=error_message,
            log_metadata=metadata,
        )
        db.add(entry)
        db.commit()
    except sqlalchemy.exc.SQLAlchemyError as e:
        logger.warning("Failed to write generation log: %s", e)
        db.rollback()


def get_for_article(db: Session, article_id: str, limit: int = 100) -> list[GenerationLog]:
    """Entries for one article, newest first."""
    return (
        db.query(GenerationLog)
        .filter(GenerationLog.article_id == article_id)
        .order_by(GenerationLog.created_at.desc(), GenerationLog.id.desc())
        .limit(limit)
        .all()
    )


def get_by_user(db: Session, user_id: str, limit: int = 100) -> list[GenerationLog]:
    return (
        db.query(GenerationLog)
        .filter(GenerationLog.user_id == user_id)
        .order_by(GenerationLog.created_at.desc(), GenerationLog.id.desc())
        .limit(limit)
        .all()
    )


def purge_old_entries(db: Session, days: int = 365) -> int:
    """Delete entries older than `days`. Returns count of deleted rows.

    Skipped when days <= 0 (keep forever). Never raises.
    """
    if days <= 0:
        return 0

    cutoff = datetime.now(timezone.utc) - timedelta(days=days)
    try:
        count = db.query(GenerationLog).filter(GenerationLog.created_at < cutoff).delete()
        db.commit()
        return count
    except sqlalchemy.exc.SQLAlchemyError as e:
        logger.warning("Failed to purge generation log: %s", e)
        db.rollback()
        return 0
