"""Article model."""

import uuid

from sqlalchemy import Column, Index, String, Text, Integer, DateTime, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base

PLATFORMS = ("medium", "devto", "dzone", "all")
STATUSES = ("draft", "generated", "published", "failed")


def _new_id() -> str:
    return str(uuid.uuid4())


class Article(Base):
    """A generated or hand-written article owned by one user."""

    __tablename__ = "articles"
    __table_args__ = (
        Index("ix_articles_user_created", "user_id", "created_at"),
        Index("ix_articles_status", "status"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(255), nullable=False)

    title = Column(String(500), nullable=False)
    content = Column(Text, nullable=False, default="")          # Markdown
    rich_text_content = Column(Text, nullable=True)             # HTML rendering of content
    description = Column(Text, nullable=True)
    tags = Column(JSON, default=list)
    word_count = Column(Integer, default=0)

    platform = Column(String(20), nullable=False, default="all")
    article_type = Column(String(50), nullable=True)
    status = Column(String(20), nullable=False, default="draft")

    # Generation tracking
    ai_provider = Column(String(100), nullable=True)
    file_id = Column(String(255), nullable=True)  # download file name stem
    markdown_url = Column(Text, nullable=True)  # public copy in object storage
    generation_metadata = Column(JSON, nullable=True)
    error_message = Column(Text, nullable=True)

    # Diagram cache: mermaid-<md5[:8]> -> uploaded image URL
    diagram_images = Column(JSON, nullable=True)

    generated_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    publications = relationship(
        "ArticlePublication",
        back_populates="article",
        cascade="all, delete-orphan",
    )
