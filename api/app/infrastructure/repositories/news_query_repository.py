"""
Repositorio de consultas sobre la tabla unificada de gold.
Solo lectura: la escritura la hace el batch sync (GoldSyncRepository).
"""
from typing import List, Optional, Tuple

from sqlalchemy import Text, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.dto.news_dto import NewsFilter
from app.domain.entities.news import NewsSource
from app.infrastructure.database.models import SyncMetadataModel, TranslatedNewsModel


def build_news_conditions(news_filter: NewsFilter) -> list:
    """Traduce el filtro a condiciones SQLAlchemy (AND entre todas)."""
    conditions = []
    if news_filter.source is not None:
        conditions.append(TranslatedNewsModel.source == news_filter.source.value)
    if news_filter.ticker:
        conditions.append(TranslatedNewsModel.tickers.any(news_filter.ticker))
    elif news_filter.exchange_suffix:
        # "600000.SH 000001.SZ " LIKE "%.SH %": algún ticker termina en el sufijo
        joined = func.array_to_string(TranslatedNewsModel.tickers, " ", type_=Text).concat(" ")
        conditions.append(joined.like(f"%.{news_filter.exchange_suffix} %"))
    if news_filter.date_from is not None:
        conditions.append(TranslatedNewsModel.published_at >= news_filter.date_from)
    if news_filter.date_to is not None:
        conditions.append(TranslatedNewsModel.published_at <= news_filter.date_to)
    return conditions


class NewsQueryRepository:
    """Consultas paginadas y de detalle sobre gold.translated_news."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_news(self, news_filter: NewsFilter) -> Tuple[List[TranslatedNewsModel], int]:
        """
        Lista noticias ordenadas por fecha de publicación descendente.

        Returns:
            (página de filas, total de filas que cumplen el filtro)
        """
        conditions = build_news_conditions(news_filter)

        total = await self.db.scalar(
            select(func.count()).select_from(TranslatedNewsModel).where(*conditions)
        )

        result = await self.db.execute(
            select(TranslatedNewsModel)
            .where(*conditions)
            .order_by(TranslatedNewsModel.published_at.desc(), TranslatedNewsModel.id.desc())
            .limit(news_filter.limit)
            .offset(news_filter.offset)
        )
        return list(result.scalars().all()), int(total or 0)

    async def get_news_detail(self, source: NewsSource, source_news_id: str) -> Optional[TranslatedNewsModel]:
        """Obtiene una noticia por su clave natural."""
        result = await self.db.execute(
            select(TranslatedNewsModel).where(
                TranslatedNewsModel.source == source.value,
                TranslatedNewsModel.source_news_id == source_news_id,
            )
        )
        return result.scalars().first()

    async def list_sync_metadata(self) -> List[SyncMetadataModel]:
        """Watermarks persistidos, ordenados por fuente."""
        result = await self.db.execute(select(SyncMetadataModel).order_by(SyncMetadataModel.source))
        return list(result.scalars().all())
