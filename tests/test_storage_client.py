import re

import pytest
from conftest import InMemoryObjectStorage
from app.services.object_storage import StorageError
from app.services.storage_client import StorageClient, build_object_key, file_extension


UUID_KEY = re.compile(r"^uploads/[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}\.jpg$")


@pytest.mark.parametrize("filename, expected", [
    ("photo.jpg", ".jpg"),
    ("archive.tar.gz", ".gz"),
    (".bashrc", ".bashrc"),
    ("README", ""),
    ("dir.v1/README", ""),
    ("nested/path/clip.MP4", ".MP4"),
    ("", ""),
    (None, ""),
])
def test_file_extension(filename, expected):
    assert file_extension(filename) == expected


def test_build_object_key_format():
    key = build_object_key("uploads", "holiday.jpg")

    assert UUID_KEY.match(key)


def test_build_object_key_is_unique():
    keys = {build_object_key("uploads", "same.png") for _ in range(100)}

    assert len(keys) == 100


def test_store_puts_object_and_returns_url(storage_client, object_storage):
    """Test a successful store."""
    stored = storage_client.store(b"%PDF-1.4 report", "reports", "q3.pdf")

    assert stored.key.startswith("reports/")
    assert stored.key.endswith(".pdf")
    assert stored.content_type == "application/pdf"
    assert stored.size == len(b"%PDF-1.4 report")
    assert stored.url == f"https://test-bucket.s3.us-east-1.amazonaws.com/{stored.key}"
    assert object_storage.objects[stored.key]["data"] == b"%PDF-1.4 report"


def test_store_ignores_filename_for_content_type(storage_client):
    stored = storage_client.store(b"GIF89a....", "uploads", "picture.pdf")

    assert stored.content_type == "image/gif"
    assert stored.key.endswith(".pdf")


def test_store_wraps_backend_error():
    """Test that backend failures surface with the backend message."""
    client = StorageClient(InMemoryObjectStorage(fail_on_call=1))

    with pytest.raises(StorageError) as exc_info:
        client.store(b"data", "uploads", "a.txt")

    assert str(exc_info.value) == "failed to upload file: simulated backend failure"
