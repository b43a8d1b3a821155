"""
Manejadores de eventos de inicio y cierre de la aplicacion.

El startup arma el pipeline completo y lo deja en `app.state`:
- silver_db / gold_db: PostgresDatabase (silver en solo lectura)
- gold_repository: escritura en gold
- batch_sync: orquestador (BatchSyncUseCases)
- batch_scheduler: scheduler de intervalo fijo
"""
from typing import Callable
from fastapi import FastAPI
from loguru import logger

from app.application.services.news_sources import resolve_sources
from app.application.use_cases.batch_sync_use_cases import BatchSyncUseCases
from app.core.config import Settings, settings, validate_sync_settings
from app.infrastructure.database.pg_connection import PostgresDatabase
from app.infrastructure.database.session import close_db
from app.infrastructure.repositories.gold_sync_repository import GoldSyncRepository
from app.infrastructure.repositories.silver_news_repository import SilverNewsRepository
from app.infrastructure.scheduler.batch_scheduler import BatchSyncScheduler


def build_sync_pipeline(cfg: Settings) -> dict:
    """
    Construye bases, repositorios, orquestador y scheduler a partir de la configuracion.
    No abre conexiones.

    Returns:
        dict: componentes por nombre (se copian a app.state)
    """
    silver_db = PostgresDatabase(cfg.silver_dsn, name="silver", read_only=True)
    gold_db = PostgresDatabase(cfg.gold_dsn, name="gold")
    gold_repository = GoldSyncRepository(gold_db, schema=cfg.GOLD_DB_SCHEMA)

    batch_sync = BatchSyncUseCases(
        reader=SilverNewsRepository(silver_db, schema=cfg.SILVER_DB_SCHEMA),
        writer=gold_repository,
        sources=resolve_sources(cfg.sync_source_names),
        batch_size=cfg.BATCH_SIZE,
        parallel_sources=cfg.SYNC_PARALLEL_SOURCES,
    )
    batch_scheduler = BatchSyncScheduler(
        run_pass=batch_sync.sync_all,
        interval_minutes=cfg.BATCH_INTERVAL_MINUTES,
    )
    return {
        "silver_db": silver_db,
        "gold_db": gold_db,
        "gold_repository": gold_repository,
        "batch_sync": batch_sync,
        "batch_scheduler": batch_scheduler,
    }


def startup_handler(app: FastAPI) -> Callable:
    """
    Manejador de eventos de inicio de la aplicacion.

    Args:
        app: Instancia de FastAPI

    Returns:
        Callable: Funcion asincrona de inicio
    """
    async def startup() -> None:
        """Inicializa recursos al inicio de la aplicacion."""
        try:
            logger.info(f"Iniciando {settings.APP_NAME} v{settings.APP_VERSION}")
            logger.info(f"Entorno: {settings.ENVIRONMENT}")

            # Configuracion invalida es fatal (ConfigurationError)
            validate_sync_settings(settings)

            # Configurar logging adicional
            logger.add(
                settings.LOG_FILE,
                rotation="500 MB",
                retention="10 days",
                level=settings.LOG_LEVEL
            )

            components = build_sync_pipeline(settings)
            for name, component in components.items():
                setattr(app.state, name, component)

            # Crea schema/tablas de gold si no existen
            await components["gold_repository"].ensure_schema()
            logger.info("Base de datos gold inicializada")

            sources = ", ".join(d.source.value for d in components["batch_sync"].sources)
            logger.info(
                f"Batch sync: fuentes=[{sources}], batch_size={settings.BATCH_SIZE}, "
                f"intervalo={settings.BATCH_INTERVAL_MINUTES} min"
            )

            if settings.SCHEDULER_ENABLED:
                components["batch_scheduler"].start(run_immediately=True)
            else:
                logger.warning("SCHEDULER_ENABLED=false: solo se sincroniza via POST /api/v1/sync/run")

            logger.success("Aplicacion iniciada correctamente")

            # Mostrar URLs disponibles
            _print_available_urls()

        except Exception as e:
            logger.error(f"Error durante startup: {e}")
            logger.exception("Detalle del error:")
            raise

    return startup


def _print_available_urls() -> None:
    """Imprime las URLs disponibles de la aplicacion."""
    # Determinar la URL base de acceso
    if settings.HOST == "0.0.0.0":
        access_host = "localhost"
    else:
        access_host = settings.HOST

    base_url = f"http://{access_host}:{settings.PORT}"

    # Mostrar las URLs disponibles
    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")
    logger.opt(colors=True).info("<bold><green>URLS DISPONIBLES:</green></bold>")
    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")
    logger.opt(colors=True).info(f"<cyan>  Swagger UI:  {base_url}/docs</cyan>")
    logger.opt(colors=True).info(f"<cyan>  Noticias:    {base_url}/api/v1/news/JP</cyan>")
    logger.opt(colors=True).info(f"<cyan>  Sync status: {base_url}/api/v1/sync/status</cyan>")
    logger.opt(colors=True).info(f"<cyan>  Health:      {base_url}/health</cyan>")
    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")


def shutdown_handler(app: FastAPI) -> Callable:
    """
    Manejador de eventos de cierre de la aplicacion.

    Args:
        app: Instancia de FastAPI

    Returns:
        Callable: Funcion asincrona de cierre
    """
    async def shutdown() -> None:
        """Libera recursos al cerrar la aplicacion."""
        logger.info("Cerrando aplicacion...")

        # Deja de aceptar ticks; espera la pasada en curso hasta el grace period
        scheduler = getattr(app.state, "batch_scheduler", None)
        if scheduler is not None:
            await scheduler.stop(grace_seconds=settings.SHUTDOWN_GRACE_SECONDS)

        # Cerrar conexiones de base de datos
        await close_db()
        logger.info("Conexiones de base de datos cerradas")

        logger.success("Aplicacion cerrada correctamente")

    return shutdown
