"""ArticleFlow backend: article generation, diagram embedding, and publishing."""

__version__ = "1.0.0"
