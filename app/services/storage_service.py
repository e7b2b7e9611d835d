#app/services/storage_service.py
import logging
import os
import uuid
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, BinaryIO, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.core.settings import settings
from app.core.exceptions import StorageError, StoredFileNotFound

logger = logging.getLogger("ResearchTracker.Storage")

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


class StorageService:
    """S3-compatible object storage (AWS S3 or MinIO through S3_ENDPOINT_URL)."""

    def __init__(self, client: Any = None, bucket_name: Optional[str] = None):
        self.client = client or boto3.client(
            "s3",
            endpoint_url=settings.S3_ENDPOINT_URL,
            aws_access_key_id=settings.S3_ACCESS_KEY_ID,
            aws_secret_access_key=settings.S3_SECRET_ACCESS_KEY,
            region_name=settings.S3_REGION,
        )
        self.bucket_name = bucket_name or settings.S3_BUCKET_NAME
        self._bucket_ready = False

    def ensure_bucket(self) -> None:
        """Create the bucket on first use if it does not exist."""
        if self._bucket_ready:
            return
        try:
            self.client.head_bucket(Bucket=self.bucket_name)
        except ClientError as e:
            if _error_code(e) not in _MISSING_CODES:
                logger.error(f"Error checking bucket {self.bucket_name}: {e}")
                raise StorageError(f"Cannot access bucket '{self.bucket_name}'.")
            try:
                self.client.create_bucket(Bucket=self.bucket_name)
                logger.info(f"Created bucket: {self.bucket_name}")
            except (ClientError, BotoCoreError) as create_error:
                logger.error(f"Error creating bucket: {create_error}")
                raise StorageError(f"Cannot create bucket '{self.bucket_name}'.")
        except BotoCoreError as e:
            logger.error(f"Error checking bucket {self.bucket_name}: {e}")
            raise StorageError("Object storage is unreachable.")
        self._bucket_ready = True

    def upload(
        self,
        file_obj: BinaryIO,
        filename: Optional[str],
        content_type: Optional[str] = None,
        size: int = 0,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        Store file_obj under a fresh uuid4 key that keeps the original extension.
        """
        self.ensure_bucket()
        file_id = str(uuid.uuid4())
        ext = os.path.splitext(filename or "")[1]
        object_name = f"{file_id}{ext}"

        extra_args: Dict[str, Any] = {"Metadata": metadata or {}}
        if content_type:
            extra_args["ContentType"] = content_type
        try:
            response = self.client.put_object(
                Bucket=self.bucket_name,
                Key=object_name,
                Body=file_obj,
                **extra_args,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error uploading file {filename}: {e}")
            raise StorageError("Failed to upload file.")

        logger.info(f"Uploaded file: {object_name} ({size} bytes)")
        return {
            "id": file_id,
            "object_name": object_name,
            "bucket_name": self.bucket_name,
            "original_name": filename,
            "size": size,
            "mimetype": content_type,
            "etag": (response or {}).get("ETag", "").strip('"') or None,
            "uploaded_at": datetime.now(timezone.utc),
        }

    def stat(self, object_name: str) -> Dict[str, Any]:
        try:
            return self.client.head_object(Bucket=self.bucket_name, Key=object_name)
        except ClientError as e:
            if _error_code(e) in _MISSING_CODES:
                raise StoredFileNotFound(f"File '{object_name}' not found.")
            logger.error(f"Error reading file info {object_name}: {e}")
            raise StorageError("Failed to read file info.")

    def presigned_url(self, object_name: str, expires_in: Optional[int] = None) -> str:
        """Presigned GET URL; raises StoredFileNotFound for unknown keys."""
        self.stat(object_name)
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket_name, "Key": object_name},
                ExpiresIn=expires_in or settings.FILE_URL_EXPIRE_SECONDS,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error generating presigned URL: {e}")
            raise StorageError("Failed to generate download URL.")

    def list_files(self, prefix: str = "") -> List[Dict[str, Any]]:
        self.ensure_bucket()
        files: List[Dict[str, Any]] = []
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket_name, Prefix=prefix):
                for obj in page.get("Contents", []):
                    files.append({
                        "name": obj["Key"],
                        "size": obj.get("Size", 0),
                        "last_modified": obj.get("LastModified"),
                        "etag": (obj.get("ETag") or "").strip('"') or None,
                    })
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error listing files: {e}")
            raise StorageError("Failed to retrieve file list.")
        return files

    def delete(self, object_name: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket_name, Key=object_name)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error deleting file {object_name}: {e}")
            raise StorageError("Failed to delete file.")
        logger.info(f"Deleted file: {object_name}")


@lru_cache(maxsize=1)
def get_storage_service() -> StorageService:
    return StorageService()
