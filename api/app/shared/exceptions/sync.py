"""
Excepciones del pipeline de sincronización silver -> gold.

Cada fallo lleva la fuente (`source`) y la etapa (`stage`) donde ocurrió,
para que el scheduler pueda loguear y alertar con contexto suficiente.
"""
from typing import Optional

from app.shared.exceptions.base import AppException


class SyncException(AppException):
    """Excepción base para errores del pipeline de sincronización."""

    def __init__(
        self,
        message: str,
        *,
        source: str,
        stage: str,
        error_code: str = "SYNC_ERROR",
    ):
        super().__init__(
            message=message,
            status_code=500,
            error_code=error_code,
            details={"source": source, "stage": stage},
        )
        self.source = source
        self.stage = stage


class ReadFailure(SyncException):
    """
    La base origen no responde o la consulta falló.

    El watermark no avanza: el próximo tick reintenta desde el mismo punto.
    """

    def __init__(self, source: str, stage: str = "read", cause: Optional[BaseException] = None):
        super().__init__(
            message=f"Fallo de lectura para '{source}' en etapa '{stage}': {cause}",
            source=source,
            stage=stage,
            error_code="READ_FAILURE",
        )


class WriteFailure(SyncException):
    """
    Fallo durante el UPSERT en gold (conexión o violación de constraint).

    Aborta la corrida de la fuente; el watermark queda en su último valor.
    """

    def __init__(self, source: str, stage: str = "upsert", cause: Optional[BaseException] = None):
        super().__init__(
            message=f"Fallo de escritura para '{source}' en etapa '{stage}': {cause}",
            source=source,
            stage=stage,
            error_code="WRITE_FAILURE",
        )


class WatermarkPersistFailure(SyncException):
    """
    No se pudo persistir el watermark tras un UPSERT exitoso.

    Se tolera: la próxima corrida re-procesa el último lote (UPSERT idempotente).
    """

    def __init__(self, source: str, cause: Optional[BaseException] = None):
        super().__init__(
            message=f"No se pudo avanzar el watermark de '{source}': {cause}",
            source=source,
            stage="watermark",
            error_code="WATERMARK_PERSIST_FAILURE",
        )


class ConfigurationError(AppException):
    """Configuración inválida del pipeline. Es fatal en el arranque."""

    def __init__(self, message: str, setting: Optional[str] = None):
        super().__init__(
            message=message,
            status_code=500,
            error_code="CONFIGURATION_ERROR",
            details={"setting": setting} if setting else None,
        )
