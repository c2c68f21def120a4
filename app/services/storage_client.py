import posixpath
import uuid
from dataclasses import dataclass
from typing import Optional

from app.services.content_type import detect_content_type
from app.services.object_storage import ObjectStorage, StorageError
import structlog

logger = structlog.get_logger()


@dataclass(frozen=True)
class StoredObject:
    key: str
    url: str
    content_type: str
    size: int


def file_extension(filename: Optional[str]) -> str:
    """
    Return the extension of the last path segment of ``filename``.

    The extension includes the leading dot ("photo.tar.gz" -> ".gz") and is
    empty when the final segment has no dot.
    """
    if not filename:
        return ""
    name = posixpath.basename(filename)
    dot = name.rfind(".")
    if dot == -1:
        return ""
    return name[dot:]


def build_object_key(directory: str, filename: Optional[str]) -> str:
    return f"{directory}/{uuid.uuid4()}{file_extension(filename)}"


class StorageClient:
    """
    Stores uploaded files in an object storage backend under unique keys.

    The client holds no per-request state and is shared by all requests.
    """

    def __init__(self, storage: ObjectStorage):
        self.storage = storage

    def store(self, data: bytes, directory: str, filename: Optional[str]) -> StoredObject:
        """
        Store file content under a generated key inside ``directory``.

        Args:
            data: Raw file content
            directory: Key prefix the object is stored under
            filename: Original filename; only its extension is used

        Returns:
            The stored object, including its public URL

        Raises:
            StorageError: If the backend put fails
        """
        key = build_object_key(directory, filename)
        content_type = detect_content_type(data)

        try:
            url = self.storage.put_object(key, data, content_type)
        except StorageError as e:
            raise StorageError(f"failed to upload file: {e}") from e

        logger.info(
            "Stored object",
            key=key,
            content_type=content_type,
            size=len(data),
            filename=filename,
        )

        return StoredObject(key=key, url=url, content_type=content_type, size=len(data))
