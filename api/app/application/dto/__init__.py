"""
Data Transfer Objects (DTOs) para la capa de aplicacion.
"""
from .news_dto import (
    NewsFilter,
    NewsListItemDTO,
    PaginationDTO,
    NewsListResponseDTO,
    NewsDetailDTO,
    SourceWatermarkDTO,
    SourceRunDTO,
    SyncStatusDTO,
    SyncTriggerResponseDTO,
)

__all__ = [
    "NewsFilter",
    "NewsListItemDTO",
    "PaginationDTO",
    "NewsListResponseDTO",
    "NewsDetailDTO",
    "SourceWatermarkDTO",
    "SourceRunDTO",
    "SyncStatusDTO",
    "SyncTriggerResponseDTO",
]
