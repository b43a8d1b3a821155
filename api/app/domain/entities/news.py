"""
Entidades de noticias traducidas.

- Registros silver: un tipo por pipeline upstream, cada uno con su propio
  esquema e identificador. Son de solo lectura para el sync.
- Registro canónico (gold): forma unificada que se consulta desde el API.
- Watermark: punto hasta el cual una fuente está completamente sincronizada.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


# Separador del identificador compuesto "<source>_<source_news_id>"
NEWS_ID_SEPARATOR = "_"


class NewsSource(str, Enum):
    """Fuentes de noticias (uso interno)."""
    JP_MINKABU = "jp_minkabu"
    CN_WIND = "cn_wind"


class CountryCode(str, Enum):
    """Código de país usado en el API para filtrar."""
    JP = "JP"
    CN = "CN"

    def to_news_source(self) -> NewsSource:
        """Traduce el país a la fuente interna."""
        return _COUNTRY_TO_SOURCE[self]


_COUNTRY_TO_SOURCE = {
    CountryCode.JP: NewsSource.JP_MINKABU,
    CountryCode.CN: NewsSource.CN_WIND,
}


@dataclass
class TranslatedNews:
    """
    Noticia traducida unificada (esquema gold).

    La clave natural es (source, source_news_id). `keywords` es None cuando
    la fuente no modela keywords (distinto de lista vacía).
    """

    source: NewsSource
    source_news_id: str
    original_headline: str
    translated_headline: str
    published_at: datetime
    model_name: str
    original_content: Optional[str] = None
    translated_content: Optional[str] = None
    tickers: List[str] = field(default_factory=list)
    topics: List[str] = field(default_factory=list)
    keywords: Optional[List[str]] = None
    provider: Optional[str] = None
    source_created_at: Optional[datetime] = None
    source_updated_at: Optional[datetime] = None
    synced_at: Optional[datetime] = None
    id: Optional[int] = None

    @property
    def news_id(self) -> str:
        """Identificador compuesto estable usado por el API de consulta."""
        return build_news_id(self.source, self.source_news_id)


@dataclass(frozen=True)
class JPMinkabuNews:
    """Noticia japonesa de Minkabu traducida (esquema silver)."""

    id: int
    news_id: str
    original_headline: str
    translated_headline: str
    creation_time: datetime
    model_name: str
    created_at: datetime
    updated_at: datetime
    original_story: Optional[str] = None
    translated_story: Optional[str] = None
    providers: Optional[List[str]] = None
    topics: Optional[List[str]] = None
    tickers: Optional[List[str]] = None

    @property
    def native_id(self) -> str:
        return self.news_id


@dataclass(frozen=True)
class CNWindNews:
    """Noticia china de Wind traducida (esquema silver)."""

    id: int
    object_id: str
    original_title: str
    translated_title: str
    publish_date: datetime
    model_name: str
    created_at: datetime
    updated_at: datetime
    original_content: Optional[str] = None
    translated_content: Optional[str] = None
    source: Optional[str] = None
    sections: Optional[List[str]] = None
    wind_codes: Optional[List[str]] = None
    keywords: Optional[List[str]] = None

    @property
    def native_id(self) -> str:
        return self.object_id


@dataclass(frozen=True, order=True)
class Watermark:
    """
    Cursor incremental de una fuente.

    Se ordena por (timestamp, source_id): el id nativo desempata registros
    con el mismo updated_at a través del borde de un lote.
    """

    timestamp: datetime
    source_id: str = ""


@dataclass(frozen=True)
class SyncMetadata:
    """Fila de gold.sync_metadata (estado persistido por fuente)."""

    source: NewsSource
    watermark: Optional[Watermark]
    last_sync_count: int = 0
    updated_at: Optional[datetime] = None


def build_news_id(source: NewsSource, source_news_id: str) -> str:
    """Construye el identificador compuesto "<source>_<source_news_id>"."""
    return f"{NewsSource(source).value}{NEWS_ID_SEPARATOR}{source_news_id}"


def parse_news_id(news_id: str) -> Optional[tuple[NewsSource, str]]:
    """
    Separa un identificador compuesto en (fuente, id nativo).

    Los valores de fuente contienen '_' (p.ej. "jp_minkabu"), así que no se
    puede partir por el primer separador: se busca el prefijo de fuente
    registrado más largo. Retorna None si el formato no es válido.
    """
    for source in sorted(NewsSource, key=lambda s: len(s.value), reverse=True):
        prefix = source.value + NEWS_ID_SEPARATOR
        if news_id.startswith(prefix) and len(news_id) > len(prefix):
            return source, news_id[len(prefix):]
    return None
