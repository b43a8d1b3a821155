"""
Servicios de aplicacion.

Normalizacion de registros silver y registro de fuentes sincronizables.
"""
from app.application.services.news_normalizer import (
    normalize_cn_wind,
    normalize_jp_minkabu,
)
from app.application.services.news_sources import (
    CN_WIND,
    JP_MINKABU,
    SOURCE_DEFINITIONS,
    SourceDefinition,
    get_source_definition,
    resolve_sources,
)

__all__ = [
    # Normalizacion
    "normalize_jp_minkabu",
    "normalize_cn_wind",
    # Registro de fuentes
    "SourceDefinition",
    "JP_MINKABU",
    "CN_WIND",
    "SOURCE_DEFINITIONS",
    "get_source_definition",
    "resolve_sources",
]
