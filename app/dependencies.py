from fastapi import Request

from app.config import Settings
from app.services.storage_client import StorageClient


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage_client(request: Request) -> StorageClient:
    return request.app.state.storage_client
