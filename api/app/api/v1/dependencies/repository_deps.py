"""
Dependencias para inyección de repositorios.
"""
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.database.session import get_db
from app.infrastructure.repositories.news_query_repository import NewsQueryRepository


async def get_news_query_repository(
    session: AsyncSession = Depends(get_db)
) -> NewsQueryRepository:
    """
    Dependencia para obtener el repositorio de consultas de noticias.

    Args:
        session: Sesión de base de datos (gold)

    Returns:
        NewsQueryRepository: Instancia del repositorio
    """
    return NewsQueryRepository(session)

