"""
Utilidades para manejo de fechas y horas.

Todas las marcas de tiempo del pipeline se comparan y persisten en UTC (aware).
"""
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Retorna la hora actual en UTC, como datetime aware."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Normaliza datetime a UTC (aware).

    Los timestamps naive se asumen UTC (así los guarda silver).
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class DateTimeUtils:
    """Clase de utilidades para operaciones con fechas y horas."""

    @staticmethod
    def to_iso_string(dt: datetime) -> str:
        """
        Convierte un datetime a string ISO 8601 (UTC).

        Args:
            dt: Objeto datetime

        Returns:
            str: Fecha en formato ISO 8601
        """
        return ensure_utc(dt).isoformat()

    @staticmethod
    def from_iso_string(iso_string: Optional[str]) -> Optional[datetime]:
        """
        Convierte un string ISO 8601 a datetime UTC.

        Acepta el sufijo 'Z'. Valores vacíos o inválidos retornan None
        (los filtros de consulta los ignoran).

        Args:
            iso_string: String en formato ISO 8601

        Returns:
            Optional[datetime]: Objeto datetime o None si hay error
        """
        if not iso_string:
            return None
        try:
            return ensure_utc(datetime.fromisoformat(iso_string.strip().replace("Z", "+00:00")))
        except (ValueError, TypeError):
            return None
