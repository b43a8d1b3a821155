"""
Normalizador de noticias silver -> gold.

Funciones puras (sin I/O ni estado): cada fuente tiene un mapeo fijo a
TranslatedNews. Nunca fallan por campos opcionales mal formados; esos
campos degradan a "ausente" en lugar de abortar el lote.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from app.domain.entities.news import (
    CNWindNews,
    JPMinkabuNews,
    NewsSource,
    TranslatedNews,
)
from app.shared.utils.datetime_utils import ensure_utc


def _clean_list(values: Any) -> List[str]:
    """Lista de strings sin vacíos; cualquier otra cosa degrada a []."""
    if not isinstance(values, (list, tuple)):
        return []
    return [str(v) for v in values if v is not None and str(v).strip()]


def _optional_list(values: Any) -> Optional[List[str]]:
    # None se preserva: "la fuente no trae keywords" no es lo mismo que []
    if values is None:
        return None
    return _clean_list(values)


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


def _optional_utc(value: Optional[datetime]) -> Optional[datetime]:
    return ensure_utc(value) if value is not None else None


def normalize_jp_minkabu(news: JPMinkabuNews) -> TranslatedNews:
    """
    Mapea una noticia de Minkabu a la forma canónica.

    - providers es una lista en silver; gold guarda solo el primero.
    - Minkabu no modela keywords: quedan en None.
    """
    providers = _clean_list(news.providers)
    return TranslatedNews(
        source=NewsSource.JP_MINKABU,
        source_news_id=news.news_id,
        original_headline=news.original_headline,
        original_content=news.original_story,
        translated_headline=news.translated_headline,
        translated_content=news.translated_story,
        tickers=_clean_list(news.tickers),
        topics=_clean_list(news.topics),
        keywords=None,
        provider=providers[0] if providers else None,
        published_at=ensure_utc(news.creation_time),
        model_name=news.model_name,
        source_created_at=_optional_utc(news.created_at),
        source_updated_at=_optional_utc(news.updated_at),
    )


def normalize_cn_wind(news: CNWindNews) -> TranslatedNews:
    """Mapea una noticia de Wind a la forma canónica."""
    return TranslatedNews(
        source=NewsSource.CN_WIND,
        source_news_id=news.object_id,
        original_headline=news.original_title,
        original_content=news.original_content,
        translated_headline=news.translated_title,
        translated_content=news.translated_content,
        tickers=_clean_list(news.wind_codes),
        topics=_clean_list(news.sections),
        keywords=_optional_list(news.keywords),
        provider=_optional_text(news.source),
        published_at=ensure_utc(news.publish_date),
        model_name=news.model_name,
        source_created_at=_optional_utc(news.created_at),
        source_updated_at=_optional_utc(news.updated_at),
    )
