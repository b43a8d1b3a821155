"""
CLI: silver -> gold (una pasada de batch sync).

Uso recomendado:
  - Backfill inicial o recuperación manual, sin levantar el API.
  - Si el API está corriendo con el scheduler activo, preferir
    POST /api/v1/sync/run: el scheduler garantiza que no se solapen pasadas.

Variables de entorno: las mismas del API (SILVER_*, GOLD_*, BATCH_SIZE, SYNC_SOURCES).

Ejecución:
  python scripts/run_batch_sync.py
  python scripts/run_batch_sync.py --source cn_wind --batch-size 1000
  python scripts/run_batch_sync.py --schema-only
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger
from dotenv import load_dotenv

# Permite ejecutar este script desde cualquier cwd sin configurar PYTHONPATH.
# La carpeta "api" contiene el paquete raíz `app/`.
_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

# Cargar variables desde .env si existe (api/.env o raíz del repo).
_REPO_ROOT = _API_ROOT.parent
load_dotenv(_API_ROOT / ".env", override=False)
load_dotenv(_REPO_ROOT / ".env", override=False)

from app.application.services.news_sources import resolve_sources
from app.application.use_cases.batch_sync_use_cases import BatchSyncUseCases
from app.core.config import settings, validate_sync_settings
from app.infrastructure.database.pg_connection import PostgresDatabase
from app.infrastructure.repositories.gold_sync_repository import GoldSyncRepository, build_schema_ddl
from app.infrastructure.repositories.silver_news_repository import SilverNewsRepository
from app.shared.exceptions.sync import ConfigurationError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Batch sync silver -> gold (una pasada)")
    parser.add_argument(
        "--source",
        action="append",
        dest="sources",
        metavar="SOURCE",
        help="Fuente a sincronizar (repetible). Default: SYNC_SOURCES.",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Registros por lote (default: BATCH_SIZE).",
    )
    parser.add_argument(
        "--schema-only",
        action="store_true",
        help="Solo imprime el DDL de gold (no ejecuta sync).",
    )
    return parser


async def run_once(source_names: List[str], batch_size: int) -> bool:
    """Ejecuta una pasada y loguea los watermarks resultantes. Retorna True si todas las fuentes terminaron bien."""
    gold_repo = GoldSyncRepository(
        PostgresDatabase(settings.gold_dsn, name="gold"),
        schema=settings.GOLD_DB_SCHEMA,
    )
    batch_sync = BatchSyncUseCases(
        reader=SilverNewsRepository(
            PostgresDatabase(settings.silver_dsn, name="silver", read_only=True),
            schema=settings.SILVER_DB_SCHEMA,
        ),
        writer=gold_repo,
        sources=resolve_sources(source_names),
        batch_size=batch_size,
        parallel_sources=settings.SYNC_PARALLEL_SOURCES,
    )

    await gold_repo.ensure_schema()
    report = await batch_sync.sync_all()

    for meta in await gold_repo.list_sync_metadata():
        wm = meta.watermark
        if wm is None:
            logger.info(f"{meta.source.value}: sin watermark")
            continue
        logger.info(
            f"{meta.source.value}: watermark={wm.timestamp.isoformat()} / {wm.source_id} "
            f"(último conteo: {meta.last_sync_count})"
        )
    return report.ok


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.schema_only:
        print(build_schema_ddl(settings.GOLD_DB_SCHEMA))
        return 0

    try:
        validate_sync_settings(settings)
        source_names = args.sources or settings.sync_source_names
        resolve_sources(source_names)
    except ConfigurationError as e:
        logger.error(f"Configuración inválida: {e.message}")
        return 2

    batch_size = args.batch_size if args.batch_size is not None else settings.BATCH_SIZE
    if batch_size <= 0:
        logger.error(f"--batch-size debe ser > 0 (recibido: {batch_size})")
        return 2

    logger.info("Iniciando batch sync silver -> gold...")
    ok = asyncio.run(run_once(source_names, batch_size))
    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
