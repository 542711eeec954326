import pytest

from bspcsg.config import reset_settings


@pytest.fixture(autouse=True)
def _default_settings(monkeypatch):
    monkeypatch.delenv('BSPCSG_CONFIG', raising=False)
    reset_settings()
    yield
    reset_settings()
