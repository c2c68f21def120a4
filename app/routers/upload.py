from typing import AsyncIterator, Dict, Mapping

from fastapi import APIRouter, Depends, Request, Response
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import FormData, UploadFile
from starlette.formparsers import MultiPartException, MultiPartParser

from app.config import Settings
from app.dependencies import get_app_settings, get_storage_client
from app.schemas.upload import UploadResponse
from app.services.object_storage import StorageError
from app.services.storage_client import StorageClient
import structlog

logger = structlog.get_logger()
router = APIRouter(prefix="/upload", tags=["upload"])

DIRECTORY_FIELD = "directory"


class UploadError(Exception):
    """An upload failure that is reported to the caller as plain text."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class PayloadTooLarge(MultiPartException):
    pass


async def _limited_stream(request: Request, max_size: int) -> AsyncIterator[bytes]:
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > max_size:
            raise PayloadTooLarge(f"Request body exceeds {max_size} bytes")
        yield chunk


async def parse_upload_form(request: Request, max_size: int) -> FormData:
    """
    Parse a multipart body of at most ``max_size`` bytes.

    Bodies that are not multipart, or that fail to parse, yield an empty
    form. Oversized bodies raise a 413 UploadError.
    """
    content_length = request.headers.get("content-length", "")
    if content_length.isdigit() and int(content_length) > max_size:
        raise UploadError(413, f"Request body exceeds {max_size} bytes")

    content_type = request.headers.get("content-type", "")
    if not content_type.lower().startswith("multipart/form-data") or "boundary=" not in content_type:
        logger.warning("Request is not a multipart form", content_type=content_type)
        return FormData()

    parser = MultiPartParser(request.headers, _limited_stream(request, max_size))
    try:
        return await parser.parse()
    except PayloadTooLarge as e:
        raise UploadError(413, str(e)) from e
    except (MultiPartException, ValueError) as e:
        logger.warning("Failed to parse multipart form", error=str(e))
        return FormData()


def form_directory(form: FormData, query_params: Mapping[str, str], default: str) -> str:
    """Body value first, then the URL query, then ``default`` when empty."""
    for name, value in form.multi_items():
        if name == DIRECTORY_FIELD and isinstance(value, str):
            return value or default
    return query_params.get(DIRECTORY_FIELD) or default


def first_file_per_field(form: FormData) -> Dict[str, UploadFile]:
    """Map each field name to its first attached file, in form order."""
    files: Dict[str, UploadFile] = {}
    for name, value in form.multi_items():
        # Parts with an empty filename are "no file selected" inputs.
        if isinstance(value, UploadFile) and value.filename and name not in files:
            files[name] = value
    return files


async def read_upload(upload: UploadFile) -> bytes:
    try:
        await upload.seek(0)
    except (OSError, ValueError) as e:
        raise UploadError(500, f"Error opening file: {e}") from e

    try:
        return await upload.read()
    except (OSError, ValueError) as e:
        raise UploadError(500, f"Error reading file: {e}") from e


@router.options("")
async def upload_preflight():
    """CORS preflight; the middleware supplies the headers."""
    return Response(status_code=200)


@router.post("", response_model=UploadResponse)
async def upload_files(
    request: Request,
    storage_client: StorageClient = Depends(get_storage_client),
    settings: Settings = Depends(get_app_settings),
):
    """
    Store the first file of every multipart field in object storage.

    The optional "directory" field (form body, then query string) selects
    the key prefix. The first failure aborts the whole request; URLs
    collected before it are dropped.

    Returns:
        Mapping of form field name to the stored object's public URL
    """
    form = await parse_upload_form(request, settings.max_upload_size)
    try:
        directory = form_directory(form, request.query_params, settings.default_directory)
        files = first_file_per_field(form)
        if not files:
            raise UploadError(400, "No files uploaded")

        urls: Dict[str, str] = {}
        for field, upload in files.items():
            data = await read_upload(upload)
            try:
                stored = await run_in_threadpool(
                    storage_client.store, data, directory, upload.filename
                )
            except StorageError as e:
                raise UploadError(500, f"Error uploading to S3: {e}") from e
            urls[field] = stored.url
    finally:
        await form.close()

    logger.info("Uploaded files", directory=directory, fields=sorted(urls))

    return UploadResponse(urls=urls)
