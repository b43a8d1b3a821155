"""
Scheduler del batch sync.

- Dispara `sync_all` cada BATCH_INTERVAL_MINUTES (APScheduler, intervalo fijo)
- Corre una pasada inmediatamente al arrancar
- Nunca corre dos pasadas a la vez: si un tick llega con una pasada en
  curso, el tick se omite
- Al detenerse deja de aceptar ticks, espera la pasada en curso hasta el
  grace period y recién entonces la cancela

El estado "hay una pasada corriendo" vive en un `PassState` propio del
scheduler (no es global). La verificación y el marcado ocurren sin ningún
await en medio, por lo que son atómicos dentro del event loop.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from app.application.use_cases.batch_sync_use_cases import SyncRunReport
from app.shared.utils.datetime_utils import utc_now


# Tiempo máximo para que una pasada cancelada termine de desenrollarse
CANCEL_UNWIND_TIMEOUT = 5.0


@dataclass
class PassState:
    """Estado del scheduler; su ciclo de vida es el del proceso."""

    running: bool = False
    stopping: bool = False
    current_task: Optional[asyncio.Task] = None
    current_trigger: Optional[str] = None
    passes_started: int = 0
    passes_skipped: int = 0
    last_started_at: Optional[datetime] = None
    last_finished_at: Optional[datetime] = None
    last_report: Optional[SyncRunReport] = None
    last_error: Optional[str] = None


class BatchSyncScheduler:
    """
    Ejecuta pasadas de sync en intervalo fijo, sin solapamiento.

    Uso:
        scheduler = BatchSyncScheduler(run_pass=batch_sync.sync_all, interval_minutes=10)
        scheduler.start()
        ...
        await scheduler.stop(grace_seconds=30)
    """

    JOB_ID = "batch_sync"

    def __init__(
        self,
        *,
        run_pass: Callable[[], Awaitable[SyncRunReport]],
        interval_minutes: float,
        state: Optional[PassState] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
    ) -> None:
        self._run_pass = run_pass
        self._interval_minutes = interval_minutes
        self.state = state or PassState()
        self._scheduler = scheduler or AsyncIOScheduler(timezone="UTC")
        self._background: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self.state.running

    @property
    def interval_minutes(self) -> float:
        return self._interval_minutes

    def next_run_time(self) -> Optional[datetime]:
        job = self._scheduler.get_job(self.JOB_ID)
        return job.next_run_time if job else None

    def start(self, *, run_immediately: bool = True) -> None:
        """
        Registra el job y arranca el scheduler. Requiere un event loop corriendo.
        """
        job_kwargs = {}
        if run_immediately:
            job_kwargs["next_run_time"] = utc_now()

        self._scheduler.add_job(
            self.run_pass,
            trigger=IntervalTrigger(minutes=self._interval_minutes),
            id=self.JOB_ID,
            name="batch-sync",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=None,
            replace_existing=True,
            **job_kwargs,
        )
        self._scheduler.start()
        logger.info(f"Scheduler iniciado (intervalo: {self._interval_minutes} min)")

    async def run_pass(self, trigger: str = "interval") -> Optional[SyncRunReport]:
        """
        Ejecuta una pasada si no hay otra en curso.

        Returns:
            El reporte de la pasada, o None si se omitió.
        """
        if not self._try_begin(trigger):
            return None
        return await self._execute()

    def request_pass(self, trigger: str = "manual") -> bool:
        """
        Lanza una pasada en background (p.ej. desde el API).

        Returns:
            True si la pasada arrancó, False si ya había una en curso.
        """
        if not self._try_begin(trigger):
            return False
        self._background = asyncio.create_task(self._execute())
        return True

    def _try_begin(self, trigger: str) -> bool:
        state = self.state
        if state.stopping:
            logger.info(f"Scheduler detenido; se omite pasada ({trigger})")
            return False
        if state.running:
            state.passes_skipped += 1
            logger.warning(
                f"Pasada anterior ({state.current_trigger}) sigue en curso; se omite pasada ({trigger})"
            )
            return False

        state.running = True
        state.current_trigger = trigger
        state.passes_started += 1
        state.last_started_at = utc_now()
        logger.info(f"Batch sync disparado ({trigger})")
        return True

    async def _execute(self) -> Optional[SyncRunReport]:
        state = self.state
        task = asyncio.create_task(self._run_pass())
        state.current_task = task
        try:
            report = await task
            state.last_report = report
            state.last_error = None if report.ok else (
                "Fuentes con error: " + ", ".join(s.value for s in report.failed_sources)
            )
            return report
        except asyncio.CancelledError:
            logger.warning("Pasada de batch sync cancelada")
            raise
        except Exception as e:
            state.last_error = str(e)
            logger.exception(f"Batch sync falló: {e}")
            return None
        finally:
            state.running = False
            state.current_task = None
            state.current_trigger = None
            state.last_finished_at = utc_now()

    async def stop(self, grace_seconds: float = 30.0) -> None:
        """
        Detiene el scheduler.

        1. Deja de aceptar ticks nuevos
        2. Espera la pasada en curso hasta `grace_seconds`
        3. Si no terminó, la cancela (la cancelación llega a la query psycopg en curso)
        """
        logger.info("Deteniendo scheduler...")
        self.state.stopping = True
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)

        task = self.state.current_task
        if task is not None and not task.done():
            logger.info(f"Esperando pasada en curso (máximo {grace_seconds}s)")
            done, _ = await asyncio.wait({task}, timeout=grace_seconds)
            if not done:
                logger.warning("Grace period agotado; cancelando pasada en curso")
                task.cancel()
                await asyncio.wait({task}, timeout=CANCEL_UNWIND_TIMEOUT)

        background = self._background
        if background is not None and not background.done():
            await asyncio.wait({background}, timeout=CANCEL_UNWIND_TIMEOUT)

        logger.success("Scheduler detenido")
