"""
Conexiones Postgres (psycopg v3, async) para el pipeline de sync.

Se usa psycopg directamente (sin ORM) en el camino caliente del sync:
- SQL explícito para el cursor incremental y el UPSERT
- la cancelación de la task asyncio cancela también la query en el servidor
- la sesión corre en UTC: los timestamps naive de silver se leen y comparan
  como UTC, igual que los trata ensure_utc
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import psycopg
from loguru import logger
from psycopg.rows import dict_row


def quote_ident(name: str) -> str:
    """
    Cita un identificador SQL (schema/tabla/columna).

    Los identificadores vienen de configuración/código, nunca del usuario;
    aun así rechazamos comillas para no construir SQL ambiguo.
    """
    if not name or '"' in name or "\x00" in name:
        raise ValueError(f"Identificador SQL inválido: {name!r}")
    return f'"{name}"'


SESSION_OPTIONS = "-c TimeZone=UTC"


class PostgresDatabase:
    """
    Fábrica de conexiones async para una base (silver o gold).

    Cada operación abre su propia conexión: el sync corre cada N minutos y
    no justifica mantener un pool para este camino.
    """

    def __init__(self, dsn: str, *, name: str, read_only: bool = False, connect_timeout: int = 10) -> None:
        self._dsn = dsn
        self._name = name
        self._read_only = read_only
        self._connect_timeout = connect_timeout

    @property
    def name(self) -> str:
        return self._name

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[psycopg.AsyncConnection]:
        """
        Abre conexión (autocommit False). Al salir del bloque hace commit
        si no hubo excepción, rollback en caso contrario, y cierra.
        """
        try:
            conn = await psycopg.AsyncConnection.connect(
                self._dsn,
                row_factory=dict_row,
                connect_timeout=self._connect_timeout,
                options=SESSION_OPTIONS,
            )
        except psycopg.OperationalError as e:
            raise psycopg.OperationalError(
                f"{e}\n"
                f"Sugerencia: verifica que la base '{self._name}' sea accesible desde donde ejecutas el servicio."
            ) from e

        async with conn:
            if self._read_only:
                await conn.set_read_only(True)
            yield conn

    async def ping(self) -> bool:
        """Verifica conectividad (SELECT 1). Usado por /health."""
        try:
            async with self.connect() as conn:
                async with conn.cursor() as cur:
                    await cur.execute("SELECT 1 AS ok")
                    row = await cur.fetchone()
                    return bool(row and row.get("ok") == 1)
        except psycopg.Error as e:
            logger.warning(f"Health check de '{self._name}' falló: {e}")
            return False
