"""
Entidades del dominio.
"""
from app.domain.entities.news import (
    NewsSource,
    CountryCode,
    TranslatedNews,
    JPMinkabuNews,
    CNWindNews,
    Watermark,
    SyncMetadata,
    build_news_id,
    parse_news_id,
)

__all__ = [
    "NewsSource",
    "CountryCode",
    "TranslatedNews",
    "JPMinkabuNews",
    "CNWindNews",
    "Watermark",
    "SyncMetadata",
    "build_news_id",
    "parse_news_id",
]
