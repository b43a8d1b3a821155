"""
Excepciones relacionadas con la lógica de dominio.
"""
from typing import Any

from app.shared.exceptions.base import AppException


class DomainException(AppException):
    """Excepción base para errores de dominio."""

    def __init__(self, message: str, error_code: str = "DOMAIN_ERROR", details=None):
        super().__init__(
            message=message,
            status_code=400,
            error_code=error_code,
            details=details
        )


class EntityNotFoundException(DomainException):
    """Excepción cuando no se encuentra una entidad."""

    def __init__(self, entity_name: str, entity_id: Any):
        super().__init__(
            message=f"{entity_name} con ID {entity_id} no encontrado",
            error_code="ENTITY_NOT_FOUND",
            details={"entity": entity_name, "id": str(entity_id)}
        )
        self.status_code = 404


class ValidationException(DomainException):
    """Excepción para errores de validación."""

    def __init__(self, message: str, field: str = None):
        details = {"field": field} if field else None
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details=details
        )


class InvalidCountryException(DomainException):
    """Excepcion cuando el pais solicitado no tiene fuente de noticias."""

    def __init__(self, country: str, valid_countries: list[str]):
        super().__init__(
            message=f"El pais '{country}' no es valido",
            error_code="INVALID_COUNTRY",
            details={
                "country_provided": country,
                "valid_countries": valid_countries
            }
        )


class InvalidExchangeException(DomainException):
    """Excepcion cuando la bolsa no existe para el pais."""

    def __init__(self, country: str, exchange: str, valid_exchanges: list[str]):
        super().__init__(
            message=f"La bolsa '{exchange}' no es valida para '{country}'",
            error_code="INVALID_EXCHANGE",
            details={
                "country": country,
                "exchange_provided": exchange,
                "valid_exchanges": valid_exchanges
            }
        )


class SyncAlreadyRunningException(DomainException):
    """Excepcion cuando se pide una pasada de sync con otra en curso."""

    def __init__(self, trigger: str = None):
        super().__init__(
            message="Ya hay una pasada de batch sync en curso",
            error_code="SYNC_ALREADY_RUNNING",
            details={"current_trigger": trigger} if trigger else None
        )
        self.status_code = 409
