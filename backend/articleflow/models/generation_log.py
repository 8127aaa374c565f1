"""Generation log model."""

from sqlalchemy import Column, String, Text, Integer, DateTime, JSON, Index
from sqlalchemy.sql import func
from ..database import Base


class GenerationLog(Base):
    """Append-only record of article operations.

    Fields:
        action  : generate, delete, publish, process_diagrams
        status  : started, success, failed
        metadata: JSON with operation-specific context

    article_id is not a foreign key: the ``delete`` entry is written after
    the article row is gone.
    """

    __tablename__ = "generation_logs"
    __table_args__ = (
        Index("ix_generation_logs_article", "article_id"),
        Index("ix_generation_logs_user_created", "user_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), nullable=False)
    article_id = Column(String(36), nullable=True)
    action = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False)
    ai_provider = Column(String(100), nullable=True)
    duration_ms = Column(Integer, nullable=True)
    error_message = Column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    log_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
