"""
Tests unitarios para la escritura en gold.

Verifica el SQL generado (UPSERT por clave natural, guard de monotonía del
watermark) y el manejo de transacciones/errores con dobles de psycopg.
"""
from __future__ import annotations

from datetime import timedelta

import pytest

psycopg = pytest.importorskip("psycopg")

from app.application.services.news_normalizer import normalize_cn_wind, normalize_jp_minkabu
from app.domain.entities.news import NewsSource, Watermark
from app.infrastructure.repositories.gold_sync_repository import (
    UPDATE_COLUMNS,
    UPSERT_COLUMNS,
    GoldSyncRepository,
    UpsertResult,
    build_advance_watermark_sql,
    build_schema_ddl,
    build_upsert_sql,
)
from app.shared.exceptions.sync import ReadFailure, WatermarkPersistFailure, WriteFailure

from tests.support.sync_fakes import BASE_TIME, make_cn_news, make_jp_news
from tests.support.pg_dummies import DummyAsyncCursor, DummyDatabase


def _squash(sql: str) -> str:
    return " ".join(sql.split())


class TestGoldSql:
    """Tests para el SQL de gold."""

    def test_upsert_conflicts_on_natural_key(self) -> None:
        sql = _squash(build_upsert_sql("gold"))

        assert 'INSERT INTO "gold"."translated_news"' in sql
        assert "ON CONFLICT (source, source_news_id) DO UPDATE SET" in sql
        assert "RETURNING (xmax = 0) AS is_insert" in sql

    def test_upsert_never_overwrites_source_created_at(self) -> None:
        """source_created_at se inserta pero no se actualiza."""
        sql = _squash(build_upsert_sql("gold"))

        assert "source_created_at" in UPSERT_COLUMNS
        assert "source_created_at" not in UPDATE_COLUMNS
        assert "source_created_at = EXCLUDED.source_created_at" not in sql
        assert "translated_headline = EXCLUDED.translated_headline" in sql

    def test_upsert_placeholder_count_matches_columns(self) -> None:
        assert build_upsert_sql("gold").count("%s") == len(UPSERT_COLUMNS)

    def test_watermark_update_is_monotonic(self) -> None:
        """El UPDATE del watermark solo aplica si no retrocede."""
        sql = _squash(build_advance_watermark_sql("gold"))

        assert 'INSERT INTO "gold"."sync_metadata" AS sm' in sql
        assert "ON CONFLICT (source) DO UPDATE SET" in sql
        assert "WHERE sm.last_synced_at IS NULL" in sql
        assert """(sm.last_synced_at, COALESCE(sm.last_synced_id, '') COLLATE "C") <= (EXCLUDED.last_synced_at, EXCLUDED.last_synced_id COLLATE "C")""" in sql

    def test_schema_ddl_is_idempotent(self) -> None:
        ddl = build_schema_ddl("gold")

        assert 'CREATE SCHEMA IF NOT EXISTS "gold"' in ddl
        assert 'CREATE TABLE IF NOT EXISTS "gold"."translated_news"' in ddl
        assert 'CREATE TABLE IF NOT EXISTS "gold"."sync_metadata"' in ddl
        assert "UNIQUE (source, source_news_id)" in ddl
        assert "DEFAULT '{}'" in ddl
        assert "USING GIN (tickers)" in ddl


class TestUpsert:
    """Tests para GoldSyncRepository.upsert."""

    @pytest.mark.asyncio
    async def test_empty_batch_does_not_connect(self) -> None:
        db = DummyDatabase()
        repo = GoldSyncRepository(db)

        result = await repo.upsert([])

        assert result == UpsertResult(affected=0)
        assert db.connections == 0

    @pytest.mark.asyncio
    async def test_batch_runs_in_single_transaction(self) -> None:
        """Un lote = una transacción; cuenta inserts y updates."""
        cursor = DummyAsyncCursor([{"is_insert": True}, {"is_insert": False}, {"is_insert": True}])
        db = DummyDatabase(cursor)
        repo = GoldSyncRepository(db, schema="gold")
        records = [normalize_jp_minkabu(make_jp_news(i)) for i in (1, 2, 3)]

        result = await repo.upsert(records)

        assert result.affected == 3
        assert result.inserted == 2
        assert result.updated == 1
        assert db.conn.transactions == 1
        assert db.conn.commits == 1
        assert len(cursor.executed) == 3

    @pytest.mark.asyncio
    async def test_params_follow_column_order(self) -> None:
        """Los parámetros respetan UPSERT_COLUMNS; enums como texto y listas como listas."""
        cursor = DummyAsyncCursor([{"is_insert": True}])
        repo = GoldSyncRepository(DummyDatabase(cursor))
        record = normalize_cn_wind(make_cn_news(4, keywords=None))

        await repo.upsert([record])

        _, params = cursor.executed[0]
        by_column = dict(zip(UPSERT_COLUMNS, params))
        assert by_column["source"] == "cn_wind"
        assert by_column["source_news_id"] == "cn-00004"
        assert by_column["tickers"] == ["00700.HK"]
        assert by_column["keywords"] is None
        assert by_column["provider"] == "Wind"

    @pytest.mark.asyncio
    async def test_psycopg_error_rolls_back_and_raises_write_failure(self) -> None:
        """Un fallo en medio del lote revierte el lote entero."""
        cursor = DummyAsyncCursor(
            [{"is_insert": True}],
            fail_with=psycopg.errors.NotNullViolation("null value in column"),
            fail_on_execute=2,
        )
        db = DummyDatabase(cursor)
        repo = GoldSyncRepository(db)

        with pytest.raises(WriteFailure) as exc_info:
            await repo.upsert([normalize_jp_minkabu(make_jp_news(i)) for i in (1, 2)])

        assert exc_info.value.source == "jp_minkabu"
        assert exc_info.value.stage == "upsert"
        assert db.conn.rollbacks == 1
        assert db.conn.commits == 0


class TestWatermarkPersistence:
    """Tests para get_watermark / advance_watermark."""

    @pytest.mark.asyncio
    async def test_missing_row_means_no_watermark(self) -> None:
        repo = GoldSyncRepository(DummyDatabase(DummyAsyncCursor([])))

        assert await repo.get_watermark(NewsSource.JP_MINKABU) is None

    @pytest.mark.asyncio
    async def test_reads_timestamp_and_id(self) -> None:
        cursor = DummyAsyncCursor([{"last_synced_at": BASE_TIME, "last_synced_id": "jp-00009"}])
        repo = GoldSyncRepository(DummyDatabase(cursor))

        wm = await repo.get_watermark(NewsSource.JP_MINKABU)

        assert wm == Watermark(BASE_TIME, "jp-00009")
        assert cursor.executed[0][1] == ("jp_minkabu",)

    @pytest.mark.asyncio
    async def test_null_timestamp_means_no_watermark(self) -> None:
        cursor = DummyAsyncCursor([{"last_synced_at": None, "last_synced_id": None}])
        repo = GoldSyncRepository(DummyDatabase(cursor))

        assert await repo.get_watermark(NewsSource.CN_WIND) is None

    @pytest.mark.asyncio
    async def test_read_error_is_read_failure_at_watermark_stage(self) -> None:
        cursor = DummyAsyncCursor(fail_with=psycopg.OperationalError("gold caído"))
        repo = GoldSyncRepository(DummyDatabase(cursor))

        with pytest.raises(ReadFailure) as exc_info:
            await repo.get_watermark(NewsSource.CN_WIND)

        assert exc_info.value.stage == "watermark"

    @pytest.mark.asyncio
    async def test_advance_sends_source_timestamp_id_and_count(self) -> None:
        cursor = DummyAsyncCursor()
        repo = GoldSyncRepository(DummyDatabase(cursor))
        wm = Watermark(BASE_TIME + timedelta(minutes=1), "cn-00002")

        await repo.advance_watermark(NewsSource.CN_WIND, wm, 42)

        _, params = cursor.executed[0]
        assert params == ("cn_wind", wm.timestamp, "cn-00002", 42)

    @pytest.mark.asyncio
    async def test_advance_error_is_watermark_persist_failure(self) -> None:
        cursor = DummyAsyncCursor(fail_with=psycopg.OperationalError("timeout"))
        repo = GoldSyncRepository(DummyDatabase(cursor))

        with pytest.raises(WatermarkPersistFailure) as exc_info:
            await repo.advance_watermark(NewsSource.CN_WIND, Watermark(BASE_TIME, "x"), 1)

        assert exc_info.value.stage == "watermark"

    @pytest.mark.asyncio
    async def test_list_sync_metadata_skips_unknown_sources(self) -> None:
        cursor = DummyAsyncCursor([
            {"source": "cn_wind", "last_synced_at": BASE_TIME, "last_synced_id": "cn-1",
             "last_sync_count": 5, "updated_at": BASE_TIME},
            {"source": "legacy_feed", "last_synced_at": BASE_TIME, "last_synced_id": None,
             "last_sync_count": 0, "updated_at": BASE_TIME},
        ])
        repo = GoldSyncRepository(DummyDatabase(cursor))

        result = await repo.list_sync_metadata()

        assert len(result) == 1
        assert result[0].source == NewsSource.CN_WIND
        assert result[0].watermark == Watermark(BASE_TIME, "cn-1")
        assert result[0].last_sync_count == 5
