"""
Dependencias para inyeccion de casos de uso.
"""
from fastapi import Depends, Request

from app.application.use_cases.batch_sync_use_cases import BatchSyncUseCases
from app.application.use_cases.news_use_cases import NewsUseCases
from app.api.v1.dependencies.repository_deps import get_news_query_repository
from app.infrastructure.repositories.news_query_repository import NewsQueryRepository
from app.infrastructure.scheduler.batch_scheduler import BatchSyncScheduler


async def get_news_use_cases(
    repository: NewsQueryRepository = Depends(get_news_query_repository)
) -> NewsUseCases:
    """
    Dependencia para obtener los casos de uso de noticias.

    Args:
        repository: Repositorio de consultas de noticias

    Returns:
        NewsUseCases: Instancia de casos de uso de noticias
    """
    return NewsUseCases(repository)


def get_batch_sync_use_cases(request: Request) -> BatchSyncUseCases:
    """Orquestador del sync; vive en app.state desde el startup."""
    return request.app.state.batch_sync


def get_batch_scheduler(request: Request) -> BatchSyncScheduler:
    """Scheduler del sync; vive en app.state desde el startup."""
    return request.app.state.batch_scheduler
