"""
Registro de fuentes silver.

Cada fuente es una variante que declara su tabla, columnas, columna de
cursor, id nativo (desempate del cursor), cómo construir el registro desde
una fila y cómo normalizarlo. El motor de sync es genérico sobre estas
definiciones; agregar una fuente nueva = agregar una entrada aquí.

Este módulo no realiza I/O: solo define configuración.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Sequence

from app.application.services.news_normalizer import (
    normalize_cn_wind,
    normalize_jp_minkabu,
)
from app.domain.entities.news import (
    CNWindNews,
    JPMinkabuNews,
    NewsSource,
    TranslatedNews,
    Watermark,
)
from app.shared.exceptions.sync import ConfigurationError
from app.shared.utils.datetime_utils import ensure_utc


@dataclass(frozen=True)
class SourceDefinition:
    """
    Definición de una tabla silver -> gold.

    - table: tabla silver (sin schema; el schema viene de configuración)
    - id_column: id nativo, único dentro de la fuente; desempata el cursor
    - cursor_column: "last updated" usado para el cursor incremental
    - columns: columnas a leer, en el orden del SELECT
    """

    source: NewsSource
    table: str
    id_column: str
    columns: Sequence[str]
    record_type: type
    normalizer: Callable[[Any], TranslatedNews]
    cursor_column: str = "updated_at"

    def from_row(self, row: Mapping[str, Any]) -> Any:
        """Construye el registro silver tipado desde una fila (dict_row)."""
        return self.record_type(**{c: row.get(c) for c in self.columns})

    def normalize(self, record: Any) -> TranslatedNews:
        return self.normalizer(record)

    def cursor_of(self, record: Any) -> Watermark:
        """Posición de cursor (updated_at, id nativo) de un registro."""
        return Watermark(
            timestamp=ensure_utc(getattr(record, self.cursor_column)),
            source_id=str(getattr(record, self.id_column)),
        )


JP_MINKABU = SourceDefinition(
    source=NewsSource.JP_MINKABU,
    table="jp_minkabu_translated_news",
    id_column="news_id",
    columns=(
        "id", "news_id", "original_headline", "original_story",
        "translated_headline", "translated_story", "providers", "topics", "tickers",
        "creation_time", "model_name", "created_at", "updated_at",
    ),
    record_type=JPMinkabuNews,
    normalizer=normalize_jp_minkabu,
)

CN_WIND = SourceDefinition(
    source=NewsSource.CN_WIND,
    table="cn_wind_translated_news",
    id_column="object_id",
    columns=(
        "id", "object_id", "original_title", "original_content",
        "translated_title", "translated_content", "publish_date", "source",
        "sections", "wind_codes", "keywords", "model_name", "created_at", "updated_at",
    ),
    record_type=CNWindNews,
    normalizer=normalize_cn_wind,
)

SOURCE_DEFINITIONS: Dict[NewsSource, SourceDefinition] = {
    JP_MINKABU.source: JP_MINKABU,
    CN_WIND.source: CN_WIND,
}


def get_source_definition(source: NewsSource | str) -> SourceDefinition:
    """Retorna la definición registrada para la fuente."""
    try:
        return SOURCE_DEFINITIONS[NewsSource(source)]
    except (KeyError, ValueError):
        raise ConfigurationError(
            f"Fuente desconocida: '{source}'. Registradas: "
            f"{', '.join(s.value for s in SOURCE_DEFINITIONS)}",
            setting="SYNC_SOURCES",
        )


def resolve_sources(names: Iterable[str]) -> List[SourceDefinition]:
    """
    Resuelve una lista de nombres de fuente a definiciones (sin duplicados,
    preservando el orden).

    Raises:
        ConfigurationError: si algún nombre no está registrado o la lista queda vacía.
    """
    resolved: List[SourceDefinition] = []
    for name in names:
        name = name.strip()
        if not name:
            continue
        definition = get_source_definition(name)
        if definition not in resolved:
            resolved.append(definition)
    if not resolved:
        raise ConfigurationError("No hay fuentes configuradas para sincronizar", setting="SYNC_SOURCES")
    return resolved
