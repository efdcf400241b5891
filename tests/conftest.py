import pytest
from dependency_injector import providers
from fastapi.testclient import TestClient

from config import FeatureFlags, Settings
from containers import container
from fakes import FakeModelProvider, NullCatalog
from main import app

ALL_FLAGS = FeatureFlags(guest_accounts=True, share_conversations=True, upload_files=True, weather_tool=False)


@pytest.fixture(autouse=True)
def reset_sse_app_status():
    # sse-starlette keeps a module-level exit event bound to the first event loop
    import sse_starlette.sse as sse
    if hasattr(sse, "AppStatus"):
        sse.AppStatus.should_exit_event = None
    yield


@pytest.fixture
def make_settings(tmp_path):
    def _make(**overrides) -> Settings:
        values = dict(
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
            auth_secret="test-secret",
            upload_dir=str(tmp_path / "uploads"),
            stream_cache_ttl_seconds=60,
            max_duration_seconds=10,
            flags=ALL_FLAGS,
        )
        values.update(overrides)
        return Settings(**values)
    return _make


@pytest.fixture
def model_provider():
    return FakeModelProvider()


@pytest.fixture
def make_client(make_settings, model_provider):
    clients = []

    def _make(**overrides) -> TestClient:
        container.settings.override(providers.Object(make_settings(**overrides)))
        container.model_provider.override(providers.Object(model_provider))
        container.model_catalog.override(providers.Object(NullCatalog()))
        container.reset_singletons()
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)
    container.model_catalog.reset_override()
    container.model_provider.reset_override()
    container.settings.reset_override()
    container.reset_singletons()


@pytest.fixture
def client(make_client):
    return make_client()
