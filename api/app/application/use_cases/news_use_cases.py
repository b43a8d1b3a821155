"""
Casos de uso del API de noticias (solo lectura sobre gold).
"""
from typing import Optional

from loguru import logger

from app.application.dto.news_dto import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    MAX_LIMIT,
    NewsDetailDTO,
    NewsFilter,
    NewsListItemDTO,
    NewsListResponseDTO,
    PaginationDTO,
)
from app.domain.entities.news import CountryCode, NewsSource, build_news_id, parse_news_id
from app.infrastructure.database.models import TranslatedNewsModel
from app.infrastructure.repositories.news_query_repository import NewsQueryRepository
from app.shared.exceptions.domain import (
    EntityNotFoundException,
    InvalidCountryException,
    InvalidExchangeException,
    ValidationException,
)
from app.shared.utils.datetime_utils import DateTimeUtils, ensure_utc


# Bolsas soportadas por país (sufijo del ticker, p.ej. "00700.HK")
EXCHANGES_BY_COUNTRY = {
    CountryCode.CN: ("HK", "SH", "SZ", "BJ"),
}


def parse_country(country: str) -> CountryCode:
    """Resuelve el código de país (case-insensitive)."""
    try:
        return CountryCode(country.upper())
    except ValueError:
        raise InvalidCountryException(country, [c.value for c in CountryCode])


def parse_exchange(country: CountryCode, exchange: str) -> str:
    """Valida la bolsa para el país y retorna el sufijo en mayúsculas."""
    valid = EXCHANGES_BY_COUNTRY.get(country, ())
    suffix = exchange.upper()
    if suffix not in valid:
        raise InvalidExchangeException(country.value, exchange, list(valid))
    return suffix


def _parse_positive_int(value: Optional[str], default: int) -> int:
    try:
        parsed = int(value) if value is not None else default
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def build_news_filter(
    *,
    country: str,
    exchange: Optional[str] = None,
    ticker: Optional[str] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
) -> NewsFilter:
    """
    Construye el filtro a partir de los parámetros crudos del request.

    - page inválido o <= 0 -> 1
    - limit inválido o <= 0 -> 20; mayor a 100 -> 100
    - from/to que no parsean como ISO-8601 se ignoran
    - con bolsa, el ticker se completa como "<ticker>.<BOLSA>"
    """
    country_code = parse_country(country)
    exchange_suffix = parse_exchange(country_code, exchange) if exchange is not None else None

    ticker = ticker.strip() if ticker else None
    if ticker and exchange_suffix:
        ticker = f"{ticker}.{exchange_suffix}"

    parsed_limit = min(_parse_positive_int(limit, DEFAULT_LIMIT), MAX_LIMIT)

    return NewsFilter(
        source=country_code.to_news_source(),
        ticker=ticker or None,
        exchange_suffix=exchange_suffix,
        date_from=DateTimeUtils.from_iso_string(date_from),
        date_to=DateTimeUtils.from_iso_string(date_to),
        page=_parse_positive_int(page, DEFAULT_PAGE),
        limit=parsed_limit,
    )


class NewsUseCases:
    """
    Casos de uso de consulta de noticias.
    """

    def __init__(self, repository: NewsQueryRepository):
        self.repository = repository

    async def list_news(self, news_filter: NewsFilter) -> NewsListResponseDTO:
        """
        Lista noticias paginadas.

        Returns:
            NewsListResponseDTO: Página de noticias + total
        """
        rows, total = await self.repository.list_news(news_filter)
        logger.debug(
            f"Listado de noticias: source={news_filter.source}, page={news_filter.page}, "
            f"limit={news_filter.limit}, total={total}"
        )
        return NewsListResponseDTO(
            data=[self._map_list_item(row) for row in rows],
            pagination=PaginationDTO(page=news_filter.page, limit=news_filter.limit, total=total),
        )

    async def get_news_detail(self, news_id: str) -> NewsDetailDTO:
        """
        Obtiene el detalle de una noticia por su ID compuesto.

        Raises:
            ValidationException: Si el ID no tiene el formato "<source>_<id>"
            EntityNotFoundException: Si la noticia no existe
        """
        parsed = parse_news_id(news_id)
        if parsed is None:
            raise ValidationException(f"ID de noticia inválido: {news_id}", field="news_id")

        source, source_news_id = parsed
        row = await self.repository.get_news_detail(source, source_news_id)
        if row is None:
            raise EntityNotFoundException("News", news_id)

        return NewsDetailDTO(
            id=build_news_id(source, row.source_news_id),
            source=source,
            original_headline=row.original_headline,
            original_content=row.original_content,
            translated_headline=row.translated_headline,
            translated_content=row.translated_content,
            tickers=list(row.tickers or []),
            topics=list(row.topics or []),
            keywords=list(row.keywords) if row.keywords is not None else None,
            published_at=ensure_utc(row.published_at),
            provider=row.provider,
            model_name=row.model_name,
        )

    @staticmethod
    def _map_list_item(row: TranslatedNewsModel) -> NewsListItemDTO:
        source = NewsSource(row.source)
        published_at = ensure_utc(row.published_at)
        return NewsListItemDTO(
            id=build_news_id(source, row.source_news_id),
            source=source,
            date=published_at.strftime("%Y-%m-%d"),
            time=published_at.strftime("%H:%M:%S"),
            publisher=row.provider,
            headline=row.translated_headline,
            content=row.translated_content,
            tickers=list(row.tickers or []),
        )
