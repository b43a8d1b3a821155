"""
Casos de uso de la aplicacion.
"""
from .batch_sync_use_cases import BatchSyncUseCases
from .news_use_cases import NewsUseCases

__all__ = ["BatchSyncUseCases", "NewsUseCases"]
