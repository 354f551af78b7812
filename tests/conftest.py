from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import ServiceContainer, build_services
from app.config import Settings
from app.core.database import build_engine
from app.main import app
from app.services.providers.gateway import ProviderGateway, SearchGateway
from app.services.repositories import Repositories
from tests.helpers.fake_providers import (
    FakeFirecrawl,
    FakeSearchClient,
    StubSummarizer,
    exa_entries,
    serper_entries,
)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(_env_file=None, database_url=None, firecrawl_api_key=None)


@pytest.fixture
def engine(test_settings):
    """Fresh in-memory SQLite store with every table created."""
    db_engine = build_engine(None, config=test_settings)
    yield db_engine
    db_engine.dispose()


@pytest.fixture
def repositories(engine) -> Repositories:
    return Repositories(engine)


@pytest.fixture
def firecrawl() -> FakeFirecrawl:
    return FakeFirecrawl()


@pytest.fixture
def serper() -> FakeSearchClient:
    return FakeSearchClient(serper_entries("https://a.example/1", "https://a.example/2"))


@pytest.fixture
def exa() -> FakeSearchClient:
    return FakeSearchClient(exa_entries("https://b.example/1"))


@pytest.fixture
def summarizer() -> StubSummarizer:
    return StubSummarizer()


@pytest.fixture
def gateway(firecrawl, serper, exa) -> ProviderGateway:
    return ProviderGateway(firecrawl, search=SearchGateway(serper=serper, exa=exa))


@pytest.fixture
def services(test_settings, engine, gateway, summarizer) -> ServiceContainer:
    return build_services(test_settings, engine=engine, gateway=gateway, summarizer=summarizer)


@pytest.fixture
def client(services):
    """Test client wired to fake providers and an in-memory store."""
    app.state.services = services
    test_client = TestClient(app)
    try:
        yield test_client
    finally:
        app.state.services = None
        app.dependency_overrides.clear()
