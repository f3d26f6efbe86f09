import threading
import time

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.news_aggregator.api.dependencies import get_news_client
from src.news_aggregator.api.server import app
from src.news_aggregator.db.database import create_tables, get_db
from src.news_aggregator.tools.cache import TTLCache
from src.news_aggregator.tools.gnews_tool import GNewsClient, GNewsConfig


GNEWS_TEST_BASE_URL = "https://gnews.test/api/v4"


class FakeClock:
    """Manually advanced replacement for time.monotonic."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeGNews:
    """httpx.MockTransport handler standing in for the GNews API."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.body: object = {"totalArticles": 0, "articles": []}
        self.delay = 0.0
        self.on_request = None
        self._lock = threading.Lock()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
        if self.delay:
            time.sleep(self.delay)
        if self.on_request is not None:
            self.on_request(request)
        if isinstance(self.body, (dict, list)):
            return httpx.Response(self.status_code, json=self.body)
        return httpx.Response(self.status_code, text=str(self.body))

    @property
    def calls(self) -> int:
        return len(self.requests)

    @property
    def last_params(self) -> dict:
        return dict(self.requests[-1].url.params)


@pytest.fixture
def sample_news():
    return {
        "totalArticles": 2,
        "articles": [
            {
                "title": "Chip makers race to 2nm",
                "description": "Foundries announce new nodes.",
                "content": "Full story about semiconductors...",
                "url": "https://example.com/chips",
                "image": "https://example.com/chips.jpg",
                "publishedAt": "2024-05-01T10:00:00Z",
                "source": {"name": "Example Tech", "url": "https://example.com"},
            },
            {
                "title": "New exoplanet found",
                "description": "Astronomers spot a water world.",
                "content": "Full story about astronomy...",
                "url": "https://example.org/planet",
                "image": None,
                "publishedAt": "2024-05-02T08:30:00Z",
                "source": {"name": "Example Science", "url": "https://example.org"},
            },
        ],
    }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TTLCache(ttl_seconds=1800, check_period_seconds=120, clock=clock)


@pytest.fixture
def fake_gnews(sample_news):
    fake = FakeGNews()
    fake.body = sample_news
    return fake


@pytest.fixture
def gnews_client(cache, fake_gnews):
    http_client = httpx.Client(transport=httpx.MockTransport(fake_gnews))
    client = GNewsClient(
        GNewsConfig(api_key="test-key", base_url=GNEWS_TEST_BASE_URL, timeout_seconds=5.0),
        cache,
        http_client=http_client,
    )
    yield client
    http_client.close()


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory, gnews_client):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_news_client] = lambda: gnews_client
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client):
    response = client.post(
        "/api/auth/signup",
        json={"email": "reader@example.com", "password": "s3cret-pass"},
    )
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['token']}"}
