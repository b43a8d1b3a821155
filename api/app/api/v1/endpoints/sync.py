"""
Endpoints de administracion del batch sync silver -> gold.
Permite disparar una pasada manual y consultar el estado desde la UI.
"""
from fastapi import APIRouter, Depends, status

from app.application.dto.news_dto import (
    SourceRunDTO,
    SourceWatermarkDTO,
    SyncStatusDTO,
    SyncTriggerResponseDTO,
)
from app.application.use_cases.batch_sync_use_cases import BatchSyncUseCases
from app.api.v1.dependencies.repository_deps import get_news_query_repository
from app.api.v1.dependencies.use_case_deps import get_batch_scheduler, get_batch_sync_use_cases
from app.domain.entities.news import NewsSource
from app.infrastructure.repositories.news_query_repository import NewsQueryRepository
from app.infrastructure.scheduler.batch_scheduler import BatchSyncScheduler
from app.shared.exceptions.domain import SyncAlreadyRunningException
from app.shared.utils.datetime_utils import utc_now


router = APIRouter(prefix="/sync", tags=["Sync"])


@router.post(
    "/run",
    response_model=SyncTriggerResponseDTO,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Disparar una pasada de batch sync"
)
async def run_batch_sync(
    scheduler: BatchSyncScheduler = Depends(get_batch_scheduler),
) -> SyncTriggerResponseDTO:
    """
    Lanza una pasada en background. Si ya hay una en curso responde 409:
    nunca corren dos pasadas a la vez.
    """
    if not scheduler.request_pass(trigger="manual"):
        raise SyncAlreadyRunningException(scheduler.state.current_trigger)

    return SyncTriggerResponseDTO(
        status="accepted",
        message="Pasada de batch sync iniciada",
        requested_at=utc_now(),
    )


@router.get(
    "/status",
    response_model=SyncStatusDTO,
    summary="Estado del batch sync"
)
async def get_sync_status(
    scheduler: BatchSyncScheduler = Depends(get_batch_scheduler),
    batch_sync: BatchSyncUseCases = Depends(get_batch_sync_use_cases),
    repository: NewsQueryRepository = Depends(get_news_query_repository),
) -> SyncStatusDTO:
    """
    Estado del scheduler (pasada en curso, ultima pasada) y watermarks
    persistidos en gold.sync_metadata.
    """
    state = scheduler.state
    last_run = []
    if state.last_report is not None:
        last_run = [
            SourceRunDTO(
                source=r.source,
                synced=r.synced,
                batches=r.batches,
                ok=r.ok,
                error=str(r.error) if r.error else None,
                duration_s=round(r.duration_s, 3),
            )
            for r in state.last_report.results
        ]

    known_sources = {s.value for s in NewsSource}
    watermarks = [
        SourceWatermarkDTO(
            source=NewsSource(row.source),
            last_synced_at=row.last_synced_at,
            last_synced_id=row.last_synced_id,
            last_sync_count=row.last_sync_count or 0,
            updated_at=row.updated_at,
        )
        for row in await repository.list_sync_metadata()
        if row.source in known_sources
    ]

    return SyncStatusDTO(
        running=state.running,
        current_trigger=state.current_trigger,
        interval_minutes=scheduler.interval_minutes,
        batch_size=batch_sync.batch_size,
        next_run_at=scheduler.next_run_time(),
        passes_started=state.passes_started,
        passes_skipped=state.passes_skipped,
        last_started_at=state.last_started_at,
        last_finished_at=state.last_finished_at,
        last_error=state.last_error,
        last_run=last_run,
        watermarks=watermarks,
    )
