"""
Repositorio de lectura sobre el esquema silver.

Lectura incremental por cursor compuesto (updated_at, id nativo):
- sin watermark: los `limit` registros más antiguos (bootstrap)
- con watermark: registros estrictamente posteriores a (updated_at, id),
  orden ascendente por ambos campos

El id nativo en el cursor evita saltarse registros que comparten el mismo
updated_at cuando caen a ambos lados del borde de un lote. El id se compara
con COLLATE "C" (orden por codepoint), el mismo orden que Watermark en Python.
"""

from __future__ import annotations

from typing import Any, List, Optional

import psycopg
from loguru import logger

from app.application.services.news_sources import SourceDefinition
from app.domain.entities.news import Watermark
from app.infrastructure.database.pg_connection import PostgresDatabase, quote_ident
from app.shared.exceptions.sync import ReadFailure
from app.shared.utils.datetime_utils import ensure_utc


def build_fetch_since_query(
    definition: SourceDefinition,
    *,
    schema: str,
    watermark: Optional[Watermark],
    limit: int,
) -> tuple[str, tuple[Any, ...]]:
    """Construye el SELECT incremental (SQL, parámetros) para una fuente."""
    if limit <= 0:
        raise ValueError(f"limit debe ser positivo (recibido: {limit})")

    cursor_col = quote_ident(definition.cursor_column)
    id_col = f'{quote_ident(definition.id_column)} COLLATE "C"'
    columns_sql = ", ".join(quote_ident(c) for c in definition.columns)
    table_sql = f"{quote_ident(schema)}.{quote_ident(definition.table)}"

    if watermark is None:
        sql = f"""
            SELECT {columns_sql}
            FROM {table_sql}
            ORDER BY {cursor_col} ASC, {id_col} ASC
            LIMIT %s
        """
        return sql, (limit,)

    # Un watermark sin id (filas previas al desempate) compara contra '':
    # re-lee los registros del borde, el UPSERT idempotente los absorbe.
    sql = f"""
        SELECT {columns_sql}
        FROM {table_sql}
        WHERE ({cursor_col}, {id_col}) > (%s, %s)
        ORDER BY {cursor_col} ASC, {id_col} ASC
        LIMIT %s
    """
    return sql, (ensure_utc(watermark.timestamp), watermark.source_id or "", limit)


class SilverNewsRepository:
    """Lee lotes de noticias traducidas desde silver (solo lectura)."""

    def __init__(self, database: PostgresDatabase, *, schema: str = "silver") -> None:
        self._db = database
        self._schema = schema

    async def fetch_since(
        self,
        definition: SourceDefinition,
        watermark: Optional[Watermark],
        limit: int,
    ) -> List[Any]:
        """
        Retorna hasta `limit` registros posteriores al watermark, del más
        antiguo al más nuevo.

        Raises:
            ReadFailure: error de conexión o de consulta. Nunca retorna un
                lote parcial: las filas se leen completas antes de mapear.
        """
        sql, params = build_fetch_since_query(
            definition, schema=self._schema, watermark=watermark, limit=limit
        )
        source = definition.source.value

        try:
            async with self._db.connect() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(sql, params)
                    rows = await cur.fetchall()
        except psycopg.Error as e:
            raise ReadFailure(source, stage="read", cause=e) from e

        logger.debug(f"Lote leído de silver: source={source}, registros={len(rows)}")
        return [definition.from_row(row) for row in rows]
