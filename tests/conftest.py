import pytest

from tkextract import analyse, get_extractor_config
from tkextract.testing import create_inactive_surfaces, create_material_table, create_simple_tracker


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch):
    monkeypatch.delenv("TKEXTRACT_EPSILON", raising=False)
    monkeypatch.delenv("TKEXTRACT_Z_PIXFWD", raising=False)


@pytest.fixture
def config():
    return get_extractor_config()


@pytest.fixture
def material_table():
    return create_material_table()


@pytest.fixture
def tracker():
    return create_simple_tracker()


@pytest.fixture
def bundle(material_table, tracker, config):
    return analyse(material_table, tracker, create_inactive_surfaces(), config)
