"""
Configuración de fixtures para pytest.

Los tests no requieren una base de datos real: silver y gold se simulan
en memoria (ver tests.support.sync_fakes).
"""
import pytest

from app.application.services.news_sources import CN_WIND, JP_MINKABU, SourceDefinition
from tests.support.sync_fakes import FakeGoldWriter, FakeSilverReader


@pytest.fixture
def silver() -> FakeSilverReader:
    return FakeSilverReader()


@pytest.fixture
def gold() -> FakeGoldWriter:
    return FakeGoldWriter()


@pytest.fixture
def jp_definition() -> SourceDefinition:
    return JP_MINKABU


@pytest.fixture
def cn_definition() -> SourceDefinition:
    return CN_WIND
