"""
Casos de uso del batch sync silver -> gold.

Diseño (resumen):
- Carga el watermark de la fuente desde gold (sync_metadata)
- Lee silver por lotes ordenados por (updated_at, id nativo) > watermark
- Normaliza cada registro a TranslatedNews
- UPSERT por (source, source_news_id)
- Repite hasta recibir un lote más chico que BATCH_SIZE (drena el backlog
  completo en una sola corrida)
- Persiste el watermark una vez, al final

Si un lote falla después de otros exitosos, el watermark se avanza hasta el
último lote confirmado antes de propagar el error. La siguiente corrida
retoma desde ahí; el UPSERT idempotente absorbe cualquier re-lectura.

Este caso de uso no tiene exclusión mutua propia: el scheduler garantiza
que nunca corren dos pasadas a la vez.
"""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Protocol, Sequence

from loguru import logger

from app.application.services.news_sources import SourceDefinition
from app.domain.entities.news import NewsSource, TranslatedNews, Watermark
from app.shared.exceptions.sync import WatermarkPersistFailure
from app.shared.utils.datetime_utils import utc_now


DEFAULT_BATCH_SIZE = 500


class SourceReader(Protocol):
    async def fetch_since(
        self, definition: SourceDefinition, watermark: Optional[Watermark], limit: int
    ) -> list: ...


class TargetWriter(Protocol):
    async def get_watermark(self, source: NewsSource) -> Optional[Watermark]: ...

    async def upsert(self, records: Sequence[TranslatedNews]): ...

    async def advance_watermark(self, source: NewsSource, watermark: Watermark, count: int) -> None: ...


@dataclass
class SourceSyncResult:
    """Resultado de sincronizar una fuente en una pasada."""

    source: NewsSource
    synced: int = 0
    batches: int = 0
    watermark: Optional[Watermark] = None
    error: Optional[Exception] = None
    duration_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class SyncRunReport:
    """Resultado de una pasada completa (todas las fuentes)."""

    started_at: datetime
    finished_at: Optional[datetime] = None
    results: List[SourceSyncResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.results)

    @property
    def total_synced(self) -> int:
        return sum(r.synced for r in self.results)

    @property
    def failed_sources(self) -> List[NewsSource]:
        return [r.source for r in self.results if not r.ok]


class BatchSyncUseCases:
    """
    Orquestador del pipeline silver -> gold para todas las fuentes registradas.
    """

    def __init__(
        self,
        *,
        reader: SourceReader,
        writer: TargetWriter,
        sources: Sequence[SourceDefinition],
        batch_size: int = DEFAULT_BATCH_SIZE,
        parallel_sources: bool = False,
    ) -> None:
        if batch_size <= 0:
            raise ValueError(f"batch_size debe ser positivo (recibido: {batch_size})")
        self._reader = reader
        self._writer = writer
        self._sources = list(sources)
        self._batch_size = batch_size
        self._parallel_sources = parallel_sources

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def sources(self) -> List[SourceDefinition]:
        return list(self._sources)

    async def sync_all(self) -> SyncRunReport:
        """
        Sincroniza todas las fuentes. Cada fuente es independiente: un fallo
        en una no bloquea ni corrompe a las demás.
        """
        logger.info(f"Iniciando batch sync ({len(self._sources)} fuente(s), batch_size={self._batch_size})")
        report = SyncRunReport(started_at=utc_now())
        start = time.monotonic()

        if self._parallel_sources:
            results = await asyncio.gather(*(self._run_source(d) for d in self._sources))
        else:
            results = [await self._run_source(d) for d in self._sources]

        report.results = list(results)
        report.finished_at = utc_now()
        counts = ", ".join(f"{r.source.value}={r.synced}" for r in report.results)

        if report.ok:
            logger.success(f"Batch sync completado en {time.monotonic() - start:.2f}s: {counts}")
        else:
            failed = ", ".join(s.value for s in report.failed_sources)
            logger.warning(
                f"Batch sync completado con errores en {time.monotonic() - start:.2f}s: "
                f"{counts} (fallidas: {failed})"
            )
        return report

    async def _run_source(self, definition: SourceDefinition) -> SourceSyncResult:
        result = SourceSyncResult(source=definition.source)
        start = time.monotonic()
        try:
            result.synced = await self.sync_source(definition, result=result)
        except Exception as e:
            result.error = e
            logger.error(f"Error sincronizando {definition.source.value}: {e}")
        result.duration_s = time.monotonic() - start
        return result

    async def sync_source(
        self,
        definition: SourceDefinition,
        *,
        result: Optional[SourceSyncResult] = None,
    ) -> int:
        """
        Drena el backlog de una fuente y retorna las filas afectadas en gold.

        Raises:
            ReadFailure / WriteFailure: abortan la corrida de esta fuente; el
                watermark queda en el último lote confirmado.
        """
        source = definition.source
        start_watermark = await self._writer.get_watermark(source)
        watermark = start_watermark
        total = 0
        batches = 0

        if start_watermark is None:
            logger.info(f"{source.value}: sin watermark, sincronizando desde el registro más antiguo")

        try:
            while True:
                batch = await self._reader.fetch_since(definition, watermark, self._batch_size)
                if not batch:
                    break

                logger.debug(f"{source.value}: lote leído ({len(batch)} registros)")
                canonical = [definition.normalize(record) for record in batch]
                upserted = await self._writer.upsert(canonical)

                total += upserted.affected
                batches += 1
                # El lector entrega el lote ordenado: el último registro es el cursor
                watermark = definition.cursor_of(batch[-1])

                if len(batch) < self._batch_size:
                    break
        except Exception:
            if watermark != start_watermark:
                await self._persist_watermark(source, watermark, total)
            raise
        finally:
            if result is not None:
                result.synced = total
                result.batches = batches
                result.watermark = watermark

        if watermark != start_watermark:
            await self._persist_watermark(source, watermark, total)

        logger.info(f"{source.value}: {total} registro(s) sincronizado(s) en {batches} lote(s)")
        return total

    async def _persist_watermark(self, source: NewsSource, watermark: Watermark, count: int) -> bool:
        try:
            await self._writer.advance_watermark(source, watermark, count)
            return True
        except WatermarkPersistFailure as e:
            # Tolerado: la próxima corrida re-procesa el último lote
            logger.warning(f"No se pudo actualizar sync metadata de {source.value}: {e.message}")
            return False
