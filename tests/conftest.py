import pytest
from fastapi.testclient import TestClient
from app.config import Settings
from app.main import create_app
from app.services.object_storage import StorageError
from app.services.storage_client import StorageClient


class InMemoryObjectStorage:
    """ObjectStorage fake that keeps objects in a dict."""

    def __init__(self, bucket="test-bucket", region="us-east-1", fail_on_call=None):
        self.bucket = bucket
        self.region = region
        self.fail_on_call = fail_on_call
        self.calls = 0
        self.objects = {}

    def put_object(self, key, data, content_type):
        self.calls += 1
        if self.fail_on_call == self.calls:
            raise StorageError("simulated backend failure")
        self.objects[key] = {"data": data, "content_type": content_type}
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        aws_region="us-east-1",
        aws_bucket="test-bucket",
    )


@pytest.fixture
def object_storage():
    return InMemoryObjectStorage()


@pytest.fixture
def storage_client(object_storage):
    return StorageClient(object_storage)


@pytest.fixture(scope="function")
def client(settings, storage_client):
    app = create_app(settings=settings, storage_client=storage_client)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def sample_files():
    return {
        "avatar": ("me.png", b"\x89PNG\r\n\x1a\n" + b"\x00" * 32, "image/png"),
        "resume": ("cv.pdf", b"%PDF-1.7\n%binary", "application/pdf"),
        "notes": ("notes.txt", b"plain text notes", "text/plain"),
    }


@pytest.fixture
def make_client(settings):
    """Build a TestClient around a given ObjectStorage backend."""
    clients = []

    def _make(object_storage, **overrides):
        app_settings = settings.model_copy(update=overrides)
        app = create_app(settings=app_settings, storage_client=StorageClient(object_storage))
        test_client = TestClient(app)
        clients.append(test_client)
        return test_client

    yield _make

    for test_client in clients:
        test_client.close()
