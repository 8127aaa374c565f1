"""Article repository for database operations."""

from typing import List, Optional

from ..models import Article, ArticlePublication
from ..exceptions import ArticleNotFoundError
from .base import BaseRepository


class ArticleRepository(BaseRepository[Article]):
    """Article CRUD. Pass ``user_id`` to scope every lookup to one owner."""

    model_class = Article
    not_found_error = ArticleNotFoundError

    def __init__(self, db, user_id: Optional[str] = None):
        super().__init__(db)
        self.user_id = user_id

    def _base_query(self):
        query = self.db.query(Article)
        if self.user_id is not None:
            query = query.filter(Article.user_id == self.user_id)
        return query

    def create(self, **fields) -> Article:
        article = Article(**fields)
        self.db.add(article)
        self.db.flush()
        self.db.refresh(article)
        return article

    def list(self, skip: int = 0, limit: int = 50, status: Optional[str] = None) -> List[Article]:
        """Newest first."""
        query = self._base_query()
        if status:
            query = query.filter(Article.status == status)
        return query.order_by(Article.created_at.desc(), Article.id).offset(skip).limit(limit).all()

    def count(self) -> int:
        return self._base_query().count()

    def delete(self, article: Article) -> None:
        self.db.delete(article)
        self.db.flush()

    def get_publication(self, article_id: str, platform: str) -> Optional[ArticlePublication]:
        return self.db.query(ArticlePublication).filter(
            ArticlePublication.article_id == article_id,
            ArticlePublication.platform == platform,
        ).first()

    def add_publication(self, article_id: str, platform: str, **fields) -> ArticlePublication:
        publication = ArticlePublication(article_id=article_id, platform=platform, **fields)
        self.db.add(publication)
        self.db.flush()
        return publication
