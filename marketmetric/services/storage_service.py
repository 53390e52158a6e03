"""Report file storage.

S3 is used when AWS_S3_BUCKET is set; otherwise files live in a local
directory, which is enough for development and tests.
"""
from __future__ import annotations

import logging
import os
import re
import time
from typing import Any, Dict, Mapping

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from marketmetric.errors import StorageError, StorageNotFound, ValidationError

logger = logging.getLogger(__name__)

REPORTS_PREFIX = "reports/"
PDF_CONTENT_TYPE = "application/pdf"
_MISSING_CODES = {"404", "NoSuchKey", "NoSuchBucket", "NotFound"}


def report_path(filename: str) -> str:
    """Storage key for a new upload: reports/<epoch ms>_<name>."""
    safe = re.sub(r"\s+", "_", os.path.basename(filename or "").strip()) or "report.pdf"
    return f"{REPORTS_PREFIX}{int(time.time() * 1000)}_{safe}"


def _client_error_code(e: Exception) -> str:
    try:
        return str(e.response["Error"]["Code"])
    except (AttributeError, KeyError, TypeError):
        return ""


class S3Storage:
    backend = "s3"

    def __init__(self, bucket: str, region: str = "", client=None):
        if client is None:
            client = boto3.client("s3", region_name=region or None)
        self.bucket = bucket
        self.region = region
        self.s3 = client

    def download(self, path: str) -> bytes:
        try:
            obj = self.s3.get_object(Bucket=self.bucket, Key=path)
            return obj["Body"].read()
        except ClientError as e:
            if _client_error_code(e) in _MISSING_CODES:
                raise StorageNotFound("File not found", details=path) from e
            raise StorageError("Error downloading file", details=str(e)) from e
        except BotoCoreError as e:
            raise StorageError("Error downloading file", details=str(e)) from e

    def upload(self, path: str, data: bytes, content_type: str = PDF_CONTENT_TYPE) -> str:
        try:
            self.s3.put_object(Bucket=self.bucket, Key=path, Body=data, ContentType=content_type)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Upload failed: {e}") from e
        return path

    def bucket_exists(self) -> bool:
        try:
            self.s3.head_bucket(Bucket=self.bucket)
            return True
        except ClientError as e:
            if _client_error_code(e) in _MISSING_CODES:
                return False
            raise StorageError("Failed to check bucket existence", details=str(e)) from e
        except BotoCoreError as e:
            raise StorageError("Failed to check bucket existence", details=str(e)) from e

    def ensure_bucket(self) -> bool:
        """Create the bucket if it is missing. Returns True when created."""
        if self.bucket_exists():
            return False
        params: Dict[str, Any] = {"Bucket": self.bucket}
        if self.region and self.region != "us-east-1":
            params["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
        try:
            self.s3.create_bucket(**params)
            self.s3.put_public_access_block(
                Bucket=self.bucket,
                PublicAccessBlockConfiguration={
                    "BlockPublicAcls": True,
                    "IgnorePublicAcls": True,
                    "BlockPublicPolicy": True,
                    "RestrictPublicBuckets": True,
                },
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError("Failed to create storage bucket", details=str(e)) from e
        logger.info("Created storage bucket %s", self.bucket)
        return True

    def check(self) -> Dict[str, Any]:
        status: Dict[str, Any] = {"backend": self.backend, "bucket": self.bucket, "bucket_exists": False, "error": None}
        try:
            status["bucket_exists"] = self.bucket_exists()
        except StorageError as e:
            status["error"] = e.details or e.message
        return status


class LocalStorage:
    backend = "local"

    def __init__(self, root: str):
        self.root = os.path.abspath(root)

    def _full_path(self, path: str) -> str:
        rel = (path or "").strip().lstrip("/")
        full = os.path.abspath(os.path.join(self.root, rel))
        if not rel or os.path.commonpath([self.root, full]) != self.root:
            raise ValidationError("Invalid file path", details=path)
        return full

    def download(self, path: str) -> bytes:
        full = self._full_path(path)
        try:
            with open(full, "rb") as f:
                return f.read()
        except FileNotFoundError as e:
            raise StorageNotFound("File not found", details=path) from e
        except OSError as e:
            raise StorageError("Error downloading file", details=str(e)) from e

    def upload(self, path: str, data: bytes, content_type: str = PDF_CONTENT_TYPE) -> str:
        full = self._full_path(path)
        try:
            os.makedirs(os.path.dirname(full), exist_ok=True)
            with open(full, "wb") as f:
                f.write(data)
        except OSError as e:
            raise StorageError(f"Upload failed: {e}") from e
        return path

    def bucket_exists(self) -> bool:
        return os.path.isdir(self.root)

    def ensure_bucket(self) -> bool:
        if self.bucket_exists():
            return False
        try:
            os.makedirs(self.root, exist_ok=True)
        except OSError as e:
            raise StorageError("Failed to create storage bucket", details=str(e)) from e
        return True

    def check(self) -> Dict[str, Any]:
        return {"backend": self.backend, "bucket": self.root, "bucket_exists": self.bucket_exists(), "error": None}


def storage_from_config(cfg: Mapping[str, Any]):
    bucket = (cfg.get("AWS_S3_BUCKET") or "").strip()
    if bucket:
        return S3Storage(bucket, region=(cfg.get("AWS_REGION") or "").strip())
    return LocalStorage(cfg.get("STORAGE_DIR") or "/tmp/marketmetric_storage")
