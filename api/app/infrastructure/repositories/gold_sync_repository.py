"""
Repositorio Postgres (psycopg) para gold:
- tabla unificada translated_news (UPSERT por (source, source_news_id))
- tabla sync_metadata (watermark por fuente)

El watermark se persiste en una llamada separada y estrictamente después
del commit del lote que refleja.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

import psycopg
from loguru import logger

from app.domain.entities.news import NewsSource, SyncMetadata, TranslatedNews, Watermark
from app.infrastructure.database.pg_connection import PostgresDatabase, quote_ident
from app.shared.exceptions.sync import ReadFailure, WatermarkPersistFailure, WriteFailure
from app.shared.utils.datetime_utils import ensure_utc


UPSERT_COLUMNS = (
    "source", "source_news_id", "original_headline", "original_content",
    "translated_headline", "translated_content", "tickers", "topics", "keywords",
    "provider", "published_at", "model_name", "source_created_at", "source_updated_at",
)

# source_created_at es procedencia original: no se pisa en re-ingestas
UPDATE_COLUMNS = tuple(
    c for c in UPSERT_COLUMNS if c not in ("source", "source_news_id", "source_created_at")
)


@dataclass(frozen=True)
class UpsertResult:
    affected: int
    inserted: int = 0

    @property
    def updated(self) -> int:
        return self.affected - self.inserted


def build_schema_ddl(schema: str) -> str:
    """DDL de gold (idempotente)."""
    s = quote_ident(schema)
    return f"""
CREATE SCHEMA IF NOT EXISTS {s};

CREATE TABLE IF NOT EXISTS {s}."translated_news" (
    id                  BIGSERIAL   PRIMARY KEY,
    source              TEXT        NOT NULL,
    source_news_id      TEXT        NOT NULL,
    original_headline   TEXT        NOT NULL,
    original_content    TEXT        NULL,
    translated_headline TEXT        NOT NULL,
    translated_content  TEXT        NULL,
    tickers             TEXT[]      NOT NULL DEFAULT '{{}}',
    topics              TEXT[]      NOT NULL DEFAULT '{{}}',
    keywords            TEXT[]      NULL,
    provider            TEXT        NULL,
    published_at        TIMESTAMPTZ NOT NULL,
    model_name          TEXT        NOT NULL,
    source_created_at   TIMESTAMPTZ NULL,
    source_updated_at   TIMESTAMPTZ NULL,
    synced_at           TIMESTAMPTZ NOT NULL DEFAULT now(),
    CONSTRAINT uq_translated_news_source_id UNIQUE (source, source_news_id)
);

CREATE INDEX IF NOT EXISTS ix_translated_news_source_published
    ON {s}."translated_news" (source, published_at DESC);

CREATE INDEX IF NOT EXISTS ix_translated_news_tickers
    ON {s}."translated_news" USING GIN (tickers);

CREATE TABLE IF NOT EXISTS {s}."sync_metadata" (
    source          TEXT        PRIMARY KEY,
    last_synced_at  TIMESTAMPTZ NULL,
    last_synced_id  TEXT        NULL,
    last_sync_count INTEGER     NOT NULL DEFAULT 0,
    updated_at      TIMESTAMPTZ NOT NULL DEFAULT now()
);
""".strip()


def build_upsert_sql(schema: str) -> str:
    """
    INSERT ... ON CONFLICT (source, source_news_id) DO UPDATE.

    RETURNING (xmax = 0) distingue inserts de updates para el log.
    """
    table = f'{quote_ident(schema)}."translated_news"'
    cols_sql = ", ".join(UPSERT_COLUMNS)
    placeholders = ", ".join(["%s"] * len(UPSERT_COLUMNS))
    set_sql = ",\n                ".join(f"{c} = EXCLUDED.{c}" for c in UPDATE_COLUMNS)
    return f"""
            INSERT INTO {table}
                ({cols_sql}, synced_at)
            VALUES ({placeholders}, now())
            ON CONFLICT (source, source_news_id) DO UPDATE SET
                {set_sql},
                synced_at = now()
            RETURNING (xmax = 0) AS is_insert
        """


def build_advance_watermark_sql(schema: str) -> str:
    """
    Insert-or-update del watermark. La condición del UPDATE impide que el
    cursor retroceda (monotonía) si dos escrituras llegan desordenadas.
    """
    table = f'{quote_ident(schema)}."sync_metadata"'
    return f"""
            INSERT INTO {table} AS sm
                (source, last_synced_at, last_synced_id, last_sync_count, updated_at)
            VALUES (%s, %s, %s, %s, now())
            ON CONFLICT (source) DO UPDATE SET
                last_synced_at = EXCLUDED.last_synced_at,
                last_synced_id = EXCLUDED.last_synced_id,
                last_sync_count = EXCLUDED.last_sync_count,
                updated_at = now()
            WHERE sm.last_synced_at IS NULL
               OR (sm.last_synced_at, COALESCE(sm.last_synced_id, '') COLLATE "C")
                  <= (EXCLUDED.last_synced_at, EXCLUDED.last_synced_id COLLATE "C")
        """


def _record_params(n: TranslatedNews) -> tuple:
    return (
        NewsSource(n.source).value,
        n.source_news_id,
        n.original_headline,
        n.original_content,
        n.translated_headline,
        n.translated_content,
        list(n.tickers or []),
        list(n.topics or []),
        None if n.keywords is None else list(n.keywords),
        n.provider,
        ensure_utc(n.published_at),
        n.model_name,
        ensure_utc(n.source_created_at) if n.source_created_at else None,
        ensure_utc(n.source_updated_at) if n.source_updated_at else None,
    )


def _watermark_from_row(row: dict) -> Optional[Watermark]:
    last_synced_at: Optional[datetime] = row.get("last_synced_at")
    if last_synced_at is None:
        return None
    return Watermark(timestamp=ensure_utc(last_synced_at), source_id=row.get("last_synced_id") or "")


class GoldSyncRepository:
    """Escritura idempotente en gold + lectura/avance de watermarks."""

    def __init__(self, database: PostgresDatabase, *, schema: str = "gold") -> None:
        self._db = database
        self._schema = schema

    @property
    def schema(self) -> str:
        return self._schema

    async def ensure_schema(self) -> None:
        """Crea schema, tablas e índices de gold si no existen."""
        async with self._db.connect() as conn:
            async with conn.cursor() as cur:
                await cur.execute(build_schema_ddl(self._schema))
        logger.info(f"Esquema gold verificado: {self._schema}")

    async def get_watermark(self, source: NewsSource) -> Optional[Watermark]:
        """
        Retorna el watermark de la fuente, o None si nunca se sincronizó.

        Raises:
            ReadFailure: si gold no responde (stage="watermark").
        """
        source_value = NewsSource(source).value
        try:
            async with self._db.connect() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        f"""
                        SELECT last_synced_at, last_synced_id
                        FROM {quote_ident(self._schema)}."sync_metadata"
                        WHERE source = %s
                        """,
                        (source_value,),
                    )
                    row = await cur.fetchone()
        except psycopg.Error as e:
            raise ReadFailure(source_value, stage="watermark", cause=e) from e

        return _watermark_from_row(row) if row else None

    async def list_sync_metadata(self) -> List[SyncMetadata]:
        """Estado de sync de todas las fuentes conocidas (para /sync/status)."""
        async with self._db.connect() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    f"""
                    SELECT source, last_synced_at, last_synced_id, last_sync_count, updated_at
                    FROM {quote_ident(self._schema)}."sync_metadata"
                    ORDER BY source
                    """
                )
                rows = await cur.fetchall()

        result: List[SyncMetadata] = []
        for row in rows:
            try:
                source = NewsSource(row["source"])
            except ValueError:
                # Fila de una fuente ya no registrada
                continue
            result.append(
                SyncMetadata(
                    source=source,
                    watermark=_watermark_from_row(row),
                    last_sync_count=row.get("last_sync_count") or 0,
                    updated_at=ensure_utc(row["updated_at"]) if row.get("updated_at") else None,
                )
            )
        return result

    async def upsert(self, records: Sequence[TranslatedNews]) -> UpsertResult:
        """
        UPSERT del lote completo en una sola transacción.

        Raises:
            WriteFailure: error de conexión o de constraint; el lote entero
                se revierte.
        """
        if not records:
            return UpsertResult(affected=0)

        source_value = NewsSource(records[0].source).value
        sql = build_upsert_sql(self._schema)
        affected = 0
        inserted = 0

        try:
            async with self._db.connect() as conn:
                async with conn.transaction():
                    async with conn.cursor() as cur:
                        for record in records:
                            await cur.execute(sql, _record_params(record))
                            row = await cur.fetchone()
                            if row is None:
                                continue
                            affected += 1
                            if row.get("is_insert"):
                                inserted += 1
        except psycopg.Error as e:
            raise WriteFailure(source_value, stage="upsert", cause=e) from e

        return UpsertResult(affected=affected, inserted=inserted)

    async def advance_watermark(self, source: NewsSource, watermark: Watermark, count: int) -> None:
        """
        Persiste el watermark tras un UPSERT exitoso.

        Raises:
            WatermarkPersistFailure: el caller lo tolera (re-proceso seguro).
        """
        source_value = NewsSource(source).value
        try:
            async with self._db.connect() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        build_advance_watermark_sql(self._schema),
                        (source_value, ensure_utc(watermark.timestamp), watermark.source_id, count),
                    )
        except psycopg.Error as e:
            raise WatermarkPersistFailure(source_value, cause=e) from e
