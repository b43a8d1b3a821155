"""
Gestión de sesiones de base de datos (SQLAlchemy async) para las consultas del API sobre gold.

El pipeline de sync no usa este engine: escribe con psycopg (ver pg_connection).
"""
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker
)
from sqlalchemy.orm import declarative_base

from app.core.config import settings


# Base para modelos de SQLAlchemy
Base = declarative_base()


def _create_engine_args() -> dict:
    """
    Argumentos del engine de consultas. gold siempre es Postgres (validado
    en el arranque), asi que el pool se configura siempre.
    """
    return {
        "echo": settings.DEBUG,
        "future": True,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_pre_ping": True,  # Verifica conexion antes de usar
    }


# Engine de base de datos (lazy: no conecta hasta la primera consulta)
engine = create_async_engine(settings.gold_sqlalchemy_url, **_create_engine_args())

# Session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Generador de sesiones de base de datos.
    Para usar como dependencia en FastAPI. Las consultas son de solo lectura.

    Yields:
        AsyncSession: Sesión de base de datos
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def close_db() -> None:
    """Cierra las conexiones de la base de datos."""
    await engine.dispose()
