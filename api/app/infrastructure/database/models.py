"""
Modelos de base de datos (ORM) de gold.

El DDL lo crea el repositorio de sync (GoldSyncRepository.ensure_schema);
estos modelos solo mapean las tablas para las consultas del API.
"""
from sqlalchemy import BigInteger, Column, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import ARRAY

from app.core.config import settings
from app.infrastructure.database.session import Base


class TranslatedNewsModel(Base):
    """Noticia traducida unificada."""

    __tablename__ = "translated_news"
    __table_args__ = (
        UniqueConstraint("source", "source_news_id", name="uq_translated_news_source_id"),
        {"schema": settings.GOLD_DB_SCHEMA},
    )

    id = Column(BigInteger, primary_key=True)
    source = Column(String, nullable=False, index=True)
    source_news_id = Column(String, nullable=False)
    original_headline = Column(Text, nullable=False)
    original_content = Column(Text, nullable=True)
    translated_headline = Column(Text, nullable=False)
    translated_content = Column(Text, nullable=True)
    tickers = Column(ARRAY(Text), nullable=False, default=list)
    topics = Column(ARRAY(Text), nullable=False, default=list)
    keywords = Column(ARRAY(Text), nullable=True)
    provider = Column(Text, nullable=True)
    published_at = Column(DateTime(timezone=True), nullable=False)
    model_name = Column(Text, nullable=False)
    source_created_at = Column(DateTime(timezone=True), nullable=True)
    source_updated_at = Column(DateTime(timezone=True), nullable=True)
    synced_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<TranslatedNews(source={self.source}, source_news_id={self.source_news_id})>"


class SyncMetadataModel(Base):
    """Watermark por fuente."""

    __tablename__ = "sync_metadata"
    __table_args__ = {"schema": settings.GOLD_DB_SCHEMA}

    source = Column(String, primary_key=True)
    last_synced_at = Column(DateTime(timezone=True), nullable=True)
    last_synced_id = Column(Text, nullable=True)
    last_sync_count = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<SyncMetadata(source={self.source}, last_synced_at={self.last_synced_at})>"
