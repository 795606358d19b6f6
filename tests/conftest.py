import pytest

from CalcEngine import config_manager


@pytest.fixture(autouse=True)
def default_settings(monkeypatch):
    """Isolate every test from the user's config.json."""
    monkeypatch.setattr(config_manager, "_settings", config_manager.Settings())


@pytest.fixture
def settings():
    return config_manager.Settings(precision=6, number_format=config_manager.AUTOMATIC)


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    monkeypatch.setattr(config_manager, "config_json", path)
    monkeypatch.setattr(config_manager, "_settings", None)
    return path
