"""Record of an article published to an external platform."""

from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base


class ArticlePublication(Base):
    """One row per (article, platform). A second publish to the same platform is a 409."""

    __tablename__ = "article_publications"
    __table_args__ = (
        UniqueConstraint("article_id", "platform", name="uq_publication_article_platform"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    article_id = Column(
        String(36),
        ForeignKey("articles.id", ondelete="CASCADE"),
        nullable=False,
    )
    platform = Column(String(20), nullable=False)
    platform_article_id = Column(String(100), nullable=True)
    published_url = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="draft")  # draft | published
    published_at = Column(DateTime(timezone=True), server_default=func.now())

    article = relationship("Article", back_populates="publications")
