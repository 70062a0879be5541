"""Shared pytest fixtures for wabridge tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from wabridge.session.credentials import CredentialStore
from wabridge.session.lifecycle import LifecycleManager

from .fakes import FakeFactory

_GATEWAY_ENV_KEYS = (
    "N8N_INCOMING_URL",
    "WEBHOOK_URL",
    "WEBHOOK_TOKEN",
    "SEND_TOKEN",
    "SESSION_DIR",
    "TRANSPORT_FACTORY",
    "PORT",
    "UP_PRIVATE",
    "UP_GROUP",
    "SERVER_NAME",
    "APP_NAME",
    "FALLBACK_TEXT_MENTION",
    "SEND_JITTER_MIN_MS",
    "SEND_JITTER_MAX_MS",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolate_data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    monkeypatch.setenv("WABRIDGE_DATA_DIR", str(data_dir))
    monkeypatch.setenv("DOTENV_PATH", str(tmp_path / ".env"))
    for key in _GATEWAY_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return data_dir


@pytest.fixture(autouse=True)
def _reset_singletons(_isolate_data_dir: Path):
    from wabridge.util.singletons import reset_all_singletons

    reset_all_singletons()
    yield
    reset_all_singletons()


@pytest.fixture()
def data_dir(_isolate_data_dir: Path) -> Path:
    return _isolate_data_dir


@pytest.fixture()
def factory() -> FakeFactory:
    return FakeFactory()


@pytest.fixture()
def credentials(tmp_path: Path) -> CredentialStore:
    return CredentialStore(tmp_path / "auth")


@pytest.fixture()
def lifecycle(factory: FakeFactory, credentials: CredentialStore) -> LifecycleManager:
    return LifecycleManager(factory, credentials)
