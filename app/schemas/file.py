#app/schemas/file.py
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class StoredFile(BaseModel):
    """
    StoredFile: result of an upload to object storage.
    """
    id: str = Field(..., example="5f0c1b7e-...", description="Generated file ID")
    object_name: str = Field(..., example="5f0c1b7e-....pdf", description="Object key in the bucket")
    bucket_name: str = Field(..., example="documents")
    original_name: Optional[str] = Field(None, example="report.pdf")
    size: int = Field(0, description="Size in bytes")
    mimetype: Optional[str] = Field(None, example="application/pdf")
    etag: Optional[str] = None
    uploaded_at: datetime

class FileEntry(BaseModel):
    name: str
    size: int = 0
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None

class FileUrl(BaseModel):
    url: str = Field(..., description="Presigned download URL")
    expires_in: int = Field(..., example=3600, description="Seconds until the URL expires")
