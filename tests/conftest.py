import pytest
from fastapi.testclient import TestClient

from relay.config import Settings
from relay.dependencies import ServiceContainer
from relay.main import create_app
from tests.fakes import FakeUpstream


@pytest.fixture
def settings():
    return Settings(
        openphone_api="https://api.test/v1",
        openphone_api_key="op-key",
        openphone_from="+15550000000",
        translate_provider="LIBRE",
        deepl_api_key="deepl-key",
        deepl_url="https://deepl.test/v2/translate",
        libre_url="https://libre.test",
    )


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def make_client(settings, upstream):
    def _make(settings_override=None, **container_kwargs):
        services = ServiceContainer(settings_override or settings, http_client=upstream.client(),
                                    **container_kwargs)
        app = create_app(services=services)
        return TestClient(app), services
    return _make
