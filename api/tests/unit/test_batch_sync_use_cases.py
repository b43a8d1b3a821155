"""
Tests unitarios para BatchSyncUseCases.

Usan silver/gold en memoria (ver tests.support.sync_fakes) con la misma semántica de cursor
compuesto y UPSERT que las implementaciones reales.
"""
from __future__ import annotations

from datetime import timedelta

import pytest

from app.application.use_cases.batch_sync_use_cases import BatchSyncUseCases
from app.domain.entities.news import NewsSource, Watermark
from app.shared.exceptions.sync import ReadFailure, WriteFailure

from tests.support.sync_fakes import BASE_TIME, FakeSilverReader, make_cn_news, make_jp_news


JP = NewsSource.JP_MINKABU
CN = NewsSource.CN_WIND


def _engine(silver, gold, sources, batch_size=500, parallel=False) -> BatchSyncUseCases:
    return BatchSyncUseCases(
        reader=silver,
        writer=gold,
        sources=sources,
        batch_size=batch_size,
        parallel_sources=parallel,
    )


class TestBatchDraining:
    """El backlog completo se drena en una sola corrida."""

    @pytest.mark.asyncio
    async def test_drains_backlog_in_batches(self, silver, gold, jp_definition) -> None:
        """1200 registros con batch 500 -> 3 lotes (500, 500, 200)."""
        silver.add(JP, *[make_jp_news(i) for i in range(1, 1201)])
        engine = _engine(silver, gold, [jp_definition])

        synced = await engine.sync_source(jp_definition)

        assert synced == 1200
        assert len(gold.rows) == 1200
        assert [call[2] for call in silver.calls] == [500, 500, 500]
        # Un solo avance de watermark, al final, con el conteo total
        assert len(gold.advance_calls) == 1
        source, watermark, count = gold.advance_calls[0]
        assert source == JP
        assert watermark == Watermark(BASE_TIME + timedelta(seconds=1200), "jp-01200")
        assert count == 1200

    @pytest.mark.asyncio
    async def test_exact_multiple_needs_one_empty_read(self, silver, gold, jp_definition) -> None:
        """1000 registros con batch 500: el tercer read vuelve vacío y corta."""
        silver.add(JP, *[make_jp_news(i) for i in range(1, 1001)])
        engine = _engine(silver, gold, [jp_definition])

        synced = await engine.sync_source(jp_definition)

        assert synced == 1000
        assert len(silver.calls) == 3

    @pytest.mark.asyncio
    async def test_bootstrap_reads_from_oldest(self, silver, gold, cn_definition) -> None:
        """Sin watermark el primer read va sin cursor."""
        silver.add(CN, make_cn_news(2), make_cn_news(1))
        engine = _engine(silver, gold, [cn_definition])

        await engine.sync_source(cn_definition)

        assert silver.calls[0][1] is None
        assert gold.watermarks[CN] == Watermark(BASE_TIME + timedelta(seconds=2), "cn-00002")

    @pytest.mark.asyncio
    async def test_resumes_from_stored_watermark(self, silver, gold, jp_definition) -> None:
        """Una corrida posterior solo lee lo nuevo."""
        silver.add(JP, *[make_jp_news(i) for i in range(1, 4)])
        engine = _engine(silver, gold, [jp_definition])
        await engine.sync_source(jp_definition)

        silver.add(JP, make_jp_news(4))
        synced = await engine.sync_source(jp_definition)

        assert synced == 1
        assert silver.calls[-1][1] == Watermark(BASE_TIME + timedelta(seconds=3), "jp-00003")


class TestCursorTieBreak:
    """Registros con el mismo updated_at en el borde de un lote."""

    @pytest.mark.asyncio
    async def test_equal_timestamps_across_batches_are_not_skipped(self, silver, gold, jp_definition) -> None:
        """7 registros con idéntico updated_at y batch 3: se sincronizan los 7."""
        silver.add(JP, *[make_jp_news(i, updated_at=BASE_TIME) for i in range(1, 8)])
        engine = _engine(silver, gold, [jp_definition], batch_size=3)

        synced = await engine.sync_source(jp_definition)

        assert synced == 7
        assert len(gold.rows) == 7
        assert gold.watermarks[JP] == Watermark(BASE_TIME, "jp-00007")

    @pytest.mark.asyncio
    async def test_late_record_with_same_timestamp_and_higher_id(self, silver, gold, jp_definition) -> None:
        """Un registro nuevo con el mismo updated_at pero id mayor entra en la siguiente corrida."""
        silver.add(JP, make_jp_news(1, updated_at=BASE_TIME))
        engine = _engine(silver, gold, [jp_definition])
        await engine.sync_source(jp_definition)

        silver.add(JP, make_jp_news(2, updated_at=BASE_TIME))
        synced = await engine.sync_source(jp_definition)

        assert synced == 1
        assert ("jp_minkabu", "jp-00002") in gold.rows

    @pytest.mark.asyncio
    async def test_cursor_follows_reader_order(self, gold, jp_definition) -> None:
        """
        Con una collation que ignora mayúsculas, el último registro del lote no
        es el máximo por codepoint. El cursor debe salir del último registro
        leído para no re-leer filas ya sincronizadas.
        """
        silver = FakeSilverReader(order_key=lambda wm: (wm.timestamp, wm.source_id.lower()))
        silver.add(JP, *[
            make_jp_news(i, updated_at=BASE_TIME, news_id=news_id)
            for i, news_id in enumerate(["a", "B", "c", "D", "e", "F"], start=1)
        ])
        engine = _engine(silver, gold, [jp_definition], batch_size=2)

        synced = await engine.sync_source(jp_definition)

        assert synced == 6
        assert len(gold.rows) == 6
        assert [call[1] for call in silver.calls[1:]] == [
            Watermark(BASE_TIME, "B"),
            Watermark(BASE_TIME, "D"),
            Watermark(BASE_TIME, "F"),
        ]
        assert gold.advance_calls[-1][2] == 6


class TestIdempotency:
    """Re-ejecuciones no duplican ni retroceden."""

    @pytest.mark.asyncio
    async def test_second_run_without_changes_is_noop(self, silver, gold, cn_definition) -> None:
        silver.add(CN, *[make_cn_news(i) for i in range(1, 6)])
        engine = _engine(silver, gold, [cn_definition])
        await engine.sync_source(cn_definition)
        watermark = gold.watermarks[CN]

        synced = await engine.sync_source(cn_definition)

        assert synced == 0
        assert len(gold.rows) == 5
        assert gold.watermarks[CN] == watermark
        # Sin avance: el watermark no cambió
        assert len(gold.advance_calls) == 1

    @pytest.mark.asyncio
    async def test_updated_record_replaces_row_and_keeps_created_at(self, silver, gold, cn_definition) -> None:
        """Un registro re-traducido pisa la fila; source_created_at se conserva."""
        original = make_cn_news(1)
        silver.add(CN, original)
        engine = _engine(silver, gold, [cn_definition])
        await engine.sync_source(cn_definition)

        retranslated = make_cn_news(
            1,
            updated_at=BASE_TIME + timedelta(hours=1),
            translated_title="Better title",
            created_at=BASE_TIME + timedelta(hours=1),
        )
        silver.records[CN] = [retranslated]
        synced = await engine.sync_source(cn_definition)

        row = gold.rows[("cn_wind", "cn-00001")]
        assert synced == 1
        assert len(gold.rows) == 1
        assert row.translated_headline == "Better title"
        assert row.source_created_at == original.created_at

    @pytest.mark.asyncio
    async def test_watermark_never_moves_backwards(self, silver, gold, jp_definition) -> None:
        """Un watermark persistido más nuevo no se pisa con uno viejo."""
        newer = Watermark(BASE_TIME + timedelta(days=1), "jp-99999")
        await gold.advance_watermark(JP, newer, 1)

        await gold.advance_watermark(JP, Watermark(BASE_TIME, "jp-00001"), 1)

        assert gold.watermarks[JP] == newer


class TestFailures:
    """Fallos parciales y por fuente."""

    @pytest.mark.asyncio
    async def test_write_failure_keeps_progress_of_committed_batches(self, silver, gold, jp_definition) -> None:
        """Falla el segundo lote: el watermark queda en el último lote confirmado."""
        silver.add(JP, *[make_jp_news(i) for i in range(1, 1201)])
        gold.fail_upsert_on_call = 2
        engine = _engine(silver, gold, [jp_definition])

        with pytest.raises(WriteFailure):
            await engine.sync_source(jp_definition)

        assert len(gold.rows) == 500
        assert gold.watermarks[JP] == Watermark(BASE_TIME + timedelta(seconds=500), "jp-00500")
        assert gold.advance_calls[-1][2] == 500

    @pytest.mark.asyncio
    async def test_next_run_after_failure_completes_without_loss(self, silver, gold, jp_definition) -> None:
        silver.add(JP, *[make_jp_news(i) for i in range(1, 1201)])
        gold.fail_upsert_on_call = 2
        engine = _engine(silver, gold, [jp_definition])
        with pytest.raises(WriteFailure):
            await engine.sync_source(jp_definition)

        gold.fail_upsert_on_call = None
        synced = await engine.sync_source(jp_definition)

        assert synced == 700
        assert len(gold.rows) == 1200

    @pytest.mark.asyncio
    async def test_read_failure_on_first_batch_does_not_advance(self, silver, gold, cn_definition) -> None:
        silver.add(CN, make_cn_news(1))
        silver.fail_on_call[CN] = 1
        engine = _engine(silver, gold, [cn_definition])

        with pytest.raises(ReadFailure):
            await engine.sync_source(cn_definition)

        assert gold.advance_calls == []
        assert CN not in gold.watermarks

    @pytest.mark.asyncio
    async def test_watermark_persist_failure_is_tolerated(self, silver, gold, cn_definition) -> None:
        """Si no se puede guardar el watermark la corrida igual termina bien."""
        silver.add(CN, *[make_cn_news(i) for i in range(1, 4)])
        gold.fail_watermark = True
        engine = _engine(silver, gold, [cn_definition])

        report = await engine.sync_all()

        assert report.ok
        assert report.total_synced == 3
        assert CN not in gold.watermarks

        # La siguiente corrida re-procesa (UPSERT idempotente)
        gold.fail_watermark = False
        assert await engine.sync_source(cn_definition) == 3
        assert len(gold.rows) == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize("parallel", [False, True])
    async def test_source_failure_does_not_block_others(
        self, silver, gold, jp_definition, cn_definition, parallel: bool
    ) -> None:
        """JP falla al leer; CN se sincroniza igual."""
        silver.add(JP, make_jp_news(1))
        silver.add(CN, make_cn_news(1), make_cn_news(2))
        silver.fail_on_call[JP] = 1
        engine = _engine(silver, gold, [jp_definition, cn_definition], parallel=parallel)

        report = await engine.sync_all()

        assert not report.ok
        assert report.failed_sources == [JP]
        by_source = {r.source: r for r in report.results}
        assert isinstance(by_source[JP].error, ReadFailure)
        assert by_source[CN].synced == 2
        assert by_source[CN].ok
        assert report.finished_at is not None

    @pytest.mark.asyncio
    async def test_report_counts_partial_progress(self, silver, gold, jp_definition) -> None:
        silver.add(JP, *[make_jp_news(i) for i in range(1, 8)])
        gold.fail_upsert_on_call = 3
        engine = _engine(silver, gold, [jp_definition], batch_size=3)

        report = await engine.sync_all()

        result = report.results[0]
        assert not result.ok
        assert result.synced == 6
        assert result.batches == 2
        assert result.watermark == Watermark(BASE_TIME + timedelta(seconds=6), "jp-00006")


class TestConstruction:
    @pytest.mark.parametrize("batch_size", [0, -1])
    def test_non_positive_batch_size_raises(self, silver, gold, jp_definition, batch_size: int) -> None:
        with pytest.raises(ValueError):
            _engine(silver, gold, [jp_definition], batch_size=batch_size)
