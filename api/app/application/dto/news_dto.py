"""
DTOs del API de noticias y del estado del sync.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.domain.entities.news import NewsSource


DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100


@dataclass
class NewsFilter:
    """
    Filtros de listado ya resueltos (pais -> fuente, bolsa -> sufijo).

    `ticker` se compara exacto contra el array `tickers`; `exchange_suffix`
    (p.ej. "HK") solo aplica cuando no hay ticker.
    """

    source: Optional[NewsSource] = None
    ticker: Optional[str] = None
    exchange_suffix: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class NewsListItemDTO(BaseModel):
    """Item del listado de noticias."""

    id: str
    source: NewsSource
    date: str = Field(..., description="Fecha de publicacion (UTC, YYYY-MM-DD)")
    time: str = Field(..., description="Hora de publicacion (UTC, HH:MM:SS)")
    publisher: Optional[str] = None
    headline: str
    content: Optional[str] = None
    tickers: List[str] = Field(default_factory=list)


class PaginationDTO(BaseModel):
    page: int
    limit: int
    total: int


class NewsListResponseDTO(BaseModel):
    """Respuesta paginada del listado."""

    data: List[NewsListItemDTO]
    pagination: PaginationDTO


class NewsDetailDTO(BaseModel):
    """Detalle completo de una noticia."""

    id: str
    source: NewsSource
    original_headline: str
    original_content: Optional[str] = None
    translated_headline: str
    translated_content: Optional[str] = None
    tickers: List[str] = Field(default_factory=list)
    topics: List[str] = Field(default_factory=list)
    keywords: Optional[List[str]] = None
    published_at: datetime
    provider: Optional[str] = None
    model_name: str


class SourceWatermarkDTO(BaseModel):
    """Watermark persistido de una fuente."""

    source: NewsSource
    last_synced_at: Optional[datetime] = None
    last_synced_id: Optional[str] = None
    last_sync_count: int = 0
    updated_at: Optional[datetime] = None


class SourceRunDTO(BaseModel):
    """Resultado de una fuente en la ultima pasada."""

    source: NewsSource
    synced: int
    batches: int
    ok: bool
    error: Optional[str] = None
    duration_s: float


class SyncStatusDTO(BaseModel):
    """Estado del scheduler y de los watermarks (polling)."""

    running: bool
    current_trigger: Optional[str] = None
    interval_minutes: float
    batch_size: int
    next_run_at: Optional[datetime] = None
    passes_started: int
    passes_skipped: int
    last_started_at: Optional[datetime] = None
    last_finished_at: Optional[datetime] = None
    last_error: Optional[str] = None
    last_run: List[SourceRunDTO] = Field(default_factory=list)
    watermarks: List[SourceWatermarkDTO] = Field(default_factory=list)


class SyncTriggerResponseDTO(BaseModel):
    """Respuesta inmediata al disparar una pasada manual."""

    status: str
    message: str
    requested_at: datetime
