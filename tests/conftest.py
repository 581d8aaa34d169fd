import httpx
import pytest
from fastapi.testclient import TestClient

from bikelane_sentinel.core.config import Settings
from bikelane_sentinel.db.store import InMemoryViolationStore
from bikelane_sentinel.main import create_app

CATALOG_URL = "http://cameras.test/api/cameras"
CAMERA_FRAME = b"live-camera-frame"
JPEG_BYTES = b"\xff\xd8\xff\xe0fake-jpeg-data"

CATALOG = [
    {
        # On Bedford Ave, inside the bike lane hot spot
        "id": "cam-bedford",
        "lat": "40.7198",
        "lng": "-73.9567",
        "name": "Bedford Ave at N 7th St",
        "area": "Brooklyn",
        "image_url": "http://cameras.test/api/cameras/cam-bedford/image",
        "is_online": True,
    },
    {
        # Midtown, far from every hot spot; no name, area or image url
        "id": "cam-midtown",
        "lat": 40.7549,
        "lng": -73.9840,
        "is_online": False,
    },
]


class FakeInferenceClient:
    """Stands in for the vision model: returns a canned answer or raises."""

    def __init__(self, answer="no", error=None):
        self.answer = answer
        self.error = error
        self.calls = []
        self.content_types = []

    async def query(self, image, question, content_type="image/jpeg"):
        self.calls.append((image, question))
        self.content_types.append(content_type)
        if self.error is not None:
            raise self.error
        return self.answer


class CameraUpstream:
    """httpx.MockTransport handler emulating the camera catalog and image endpoints."""

    def __init__(self):
        self.catalog = CATALOG
        self.catalog_status = 200
        self.image_status = 200
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        if url == CATALOG_URL:
            return httpx.Response(self.catalog_status, json=self.catalog)
        if "/image" in request.url.path:
            return httpx.Response(self.image_status, content=CAMERA_FRAME)
        return httpx.Response(404)

    @property
    def catalog_hits(self):
        return sum(1 for r in self.requests if str(r.url) == CATALOG_URL)


def make_settings(**overrides) -> Settings:
    values = {
        "MOONDREAM_API_KEY": "test-key",
        "CAMERA_CATALOG_URL": CATALOG_URL,
        "SEED_DEMO_VIOLATIONS": False,
        "LOG_LEVEL": "DEBUG",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def upstream():
    return CameraUpstream()


@pytest.fixture
def http_client(upstream):
    return httpx.AsyncClient(transport=httpx.MockTransport(upstream))


@pytest.fixture
def inference():
    return FakeInferenceClient()


@pytest.fixture
def store():
    return InMemoryViolationStore()


@pytest.fixture
def client(settings, http_client, inference, store):
    app = create_app(
        settings,
        http_client=http_client,
        inference_client=inference,
        violation_store=store,
    )
    with TestClient(app) as test_client:
        yield test_client


def upload(data=JPEG_BYTES, content_type="image/jpeg", filename="street.jpg"):
    return {"image": (filename, data, content_type)}
