import asyncio

from fastapi.testclient import TestClient

from relay.config import Settings
from relay.dependencies import ServiceContainer
from relay.main import create_app
from relay.services.translation_service import DeepLTranslator, LibreTranslator
from tests.fakes import FakeUpstream, RecordingSubscriber

ENV_VARS = [
    "OPENPHONE_API", "OPENPHONE_API_KEY", "OPENPHONE_FROM", "OPENPHONE_USER_ID",
    "TRANSLATE_PROVIDER", "DEEPL_API_KEY", "DEEPL_URL", "LIBRE_URL", "LIBRE_API_KEY",
    "OPENAI_API_KEY", "OPENAI_MODEL", "PORT", "ORIGIN", "HTTP_TIMEOUT_SECONDS", "LOG_LEVEL",
]


def _clear_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch):
    _clear_env(monkeypatch)
    settings = Settings.from_env(load_dotenv_file=False)

    assert settings.openphone_api == "https://api.openphone.com/v1"
    assert settings.translate_provider == "LIBRE"
    assert settings.libre_url == "https://libretranslate.com"
    assert settings.openai_model == "gpt-4o-mini"
    assert settings.port == 3000
    assert settings.allowed_origin == "http://localhost:3000"


def test_reads_environment(monkeypatch):
    _clear_env(monkeypatch)
    monkeypatch.setenv("OPENPHONE_API", "https://proxy.example.com/v1/")
    monkeypatch.setenv("OPENPHONE_API_KEY", "key")
    monkeypatch.setenv("OPENPHONE_FROM", "+15550000000")
    monkeypatch.setenv("TRANSLATE_PROVIDER", "deepl")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("ORIGIN", "https://app.example.com")

    settings = Settings.from_env(load_dotenv_file=False)

    assert settings.openphone_api == "https://proxy.example.com/v1"
    assert settings.translate_provider == "DEEPL"
    assert settings.port == 8080
    assert settings.allowed_origin == "https://app.example.com"


def test_blank_values_count_as_missing(monkeypatch):
    _clear_env(monkeypatch)
    monkeypatch.setenv("OPENPHONE_API_KEY", "   ")
    settings = Settings.from_env(load_dotenv_file=False)
    assert settings.openphone_api_key is None


def test_missing_warnings():
    warnings = Settings(translate_provider="DEEPL").missing_warnings()
    assert any("OPENPHONE_API_KEY" in w for w in warnings)
    assert any("DEEPL_API_KEY" in w for w in warnings)
    assert any("OPENAI_API_KEY" in w for w in warnings)

    configured = Settings(openphone_api_key="k", openphone_from="+1555", openai_api_key="sk")
    assert configured.missing_warnings() == []


def test_container_selects_translator_once():
    upstream = FakeUpstream()
    deepl = ServiceContainer(Settings(translate_provider="DEEPL", deepl_api_key="k"),
                             http_client=upstream.client())
    libre = ServiceContainer(Settings(), http_client=upstream.client())

    assert isinstance(deepl.translation.translator, DeepLTranslator)
    assert isinstance(libre.translation.translator, LibreTranslator)


def test_container_close_ends_subscribers_and_http_client():
    container = ServiceContainer(Settings(), http_client=FakeUpstream().client())
    subscriber = container.broadcaster.subscribe(RecordingSubscriber())

    asyncio.run(container.aclose())

    assert subscriber.closed
    assert container.http.is_closed


def test_lifespan_builds_and_tears_down_services():
    app = create_app(Settings(openphone_api_key="k"))
    assert app.state.services is None

    with TestClient(app) as client:
        assert client.get("/healthz").status_code == 200
        services = app.state.services
        assert services is not None

    assert app.state.services is None
    assert services.http.is_closed
