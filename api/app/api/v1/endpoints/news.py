"""
Endpoints de consulta de noticias traducidas (gold).

Los parametros de paginacion y fechas se reciben crudos: valores invalidos
no producen 422 sino que caen al default (page=1, limit=20) o se ignoran
(from/to).
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.application.dto.news_dto import NewsDetailDTO, NewsListResponseDTO
from app.application.use_cases.news_use_cases import NewsUseCases, build_news_filter
from app.api.v1.dependencies.use_case_deps import get_news_use_cases


router = APIRouter(tags=["News"])


@router.get(
    "/news/{country}",
    response_model=NewsListResponseDTO,
    summary="Listar noticias por pais"
)
async def list_news(
    country: str,
    ticker: Optional[str] = Query(None, description="Ticker exacto (p.ej. 7203)"),
    date_from: Optional[str] = Query(None, alias="from", description="Desde (ISO-8601)"),
    date_to: Optional[str] = Query(None, alias="to", description="Hasta (ISO-8601)"),
    page: Optional[str] = Query(None, description="Pagina (default 1)"),
    limit: Optional[str] = Query(None, description="Tamaño de pagina (default 20, max 100)"),
    use_cases: NewsUseCases = Depends(get_news_use_cases),
) -> NewsListResponseDTO:
    """
    Lista noticias de la fuente del pais (JP, CN), mas recientes primero.
    """
    news_filter = build_news_filter(
        country=country,
        ticker=ticker,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    return await use_cases.list_news(news_filter)


@router.get(
    "/news/{country}/{exchange}",
    response_model=NewsListResponseDTO,
    summary="Listar noticias por pais y bolsa"
)
async def list_news_by_exchange(
    country: str,
    exchange: str,
    ticker: Optional[str] = Query(None, description="Codigo sin sufijo (p.ej. 00700)"),
    date_from: Optional[str] = Query(None, alias="from", description="Desde (ISO-8601)"),
    date_to: Optional[str] = Query(None, alias="to", description="Hasta (ISO-8601)"),
    page: Optional[str] = Query(None, description="Pagina (default 1)"),
    limit: Optional[str] = Query(None, description="Tamaño de pagina (default 20, max 100)"),
    use_cases: NewsUseCases = Depends(get_news_use_cases),
) -> NewsListResponseDTO:
    """
    Solo CN: HK, SH, SZ, BJ. Con ticker filtra por "<ticker>.<bolsa>";
    sin ticker, por cualquier ticker de esa bolsa.
    """
    news_filter = build_news_filter(
        country=country,
        exchange=exchange,
        ticker=ticker,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    return await use_cases.list_news(news_filter)


@router.get(
    "/news-detail/{news_id}",
    response_model=NewsDetailDTO,
    summary="Detalle de una noticia"
)
async def get_news_detail(
    news_id: str,
    use_cases: NewsUseCases = Depends(get_news_use_cases),
) -> NewsDetailDTO:
    """
    `news_id` es el identificador compuesto "<source>_<id>" del listado.
    """
    return await use_cases.get_news_detail(news_id)
