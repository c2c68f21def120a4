from pydantic import BaseModel
from typing import Dict


class UploadResponse(BaseModel):
    urls: Dict[str, str]  # form field name -> public URL
