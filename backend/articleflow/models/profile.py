"""Profile and UserSettings models.

Both are keyed by the identity provider's user id and created lazily on
the first write.
"""

from sqlalchemy import Column, String, Text, Integer, DateTime
from sqlalchemy.sql import func
from ..database import Base


class Profile(Base):
    """Public author information, used for the article signature."""

    __tablename__ = "profiles"

    id = Column(String(255), primary_key=True)  # user id
    email = Column(String(255), nullable=True)
    full_name = Column(String(255), nullable=True)
    avatar_url = Column(Text, nullable=True)
    bio = Column(Text, nullable=True)
    website = Column(Text, nullable=True)
    linkedin_handle = Column(String(255), nullable=True)
    twitter_handle = Column(String(255), nullable=True)
    github_handle = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class UserSettings(Base):
    """Per-user integration keys and generation defaults."""

    __tablename__ = "user_settings"

    user_id = Column(String(255), primary_key=True)
    devto_api_key = Column(Text, nullable=True)
    default_word_count = Column(Integer, nullable=False, default=2000)
    article_template = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
