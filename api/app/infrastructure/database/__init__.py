"""
Configuración de base de datos.

Importa todos los modelos para que se registren con Base.
"""
from app.infrastructure.database.models import (
    TranslatedNewsModel,
    SyncMetadataModel,
)
