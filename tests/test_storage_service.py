"""
Storage Tests
"""
import io
import re

import pytest
from botocore.exceptions import ClientError

from marketmetric.errors import StorageError, StorageNotFound, ValidationError
from marketmetric.services.storage_service import (
    LocalStorage,
    S3Storage,
    report_path,
    storage_from_config,
)


def client_error(code, op="GetObject"):
    return ClientError({"Error": {"Code": code, "Message": code}}, op)


class FakeS3:
    def __init__(self):
        self.objects = {}
        self.buckets = set()
        self.fail_with = None

    def get_object(self, Bucket, Key):
        if self.fail_with:
            raise self.fail_with
        if Key not in self.objects:
            raise client_error("NoSuchKey")
        return {"Body": io.BytesIO(self.objects[Key])}

    def put_object(self, Bucket, Key, Body, ContentType):
        if self.fail_with:
            raise self.fail_with
        self.objects[Key] = Body

    def head_bucket(self, Bucket):
        if Bucket not in self.buckets:
            raise client_error("404", "HeadBucket")

    def create_bucket(self, **params):
        self.created_with = params
        self.buckets.add(params["Bucket"])

    def put_public_access_block(self, **params):
        self.public_access = params


class TestReportPath:

    def test_prefix_and_spaces(self):
        path = report_path("Q3 market report.pdf")
        assert re.fullmatch(r"reports/\d+_Q3_market_report\.pdf", path)

    def test_strips_directories(self):
        assert report_path("../../etc/x.pdf").endswith("_x.pdf")


class TestLocalStorage:

    def test_roundtrip(self, tmp_path):
        store = LocalStorage(str(tmp_path))
        assert store.upload("reports/a.pdf", b"%PDF", "application/pdf") == "reports/a.pdf"
        assert store.download("reports/a.pdf") == b"%PDF"

    def test_missing(self, tmp_path):
        with pytest.raises(StorageNotFound):
            LocalStorage(str(tmp_path)).download("reports/none.pdf")

    def test_rejects_escape(self, tmp_path):
        with pytest.raises(ValidationError):
            LocalStorage(str(tmp_path / "root")).download("../outside.pdf")

    def test_ensure_bucket(self, tmp_path):
        store = LocalStorage(str(tmp_path / "bucket"))
        assert store.check()["bucket_exists"] is False
        assert store.ensure_bucket() is True
        assert store.ensure_bucket() is False
        assert store.check()["bucket_exists"] is True


class TestS3Storage:

    def test_upload_download(self):
        s3 = FakeS3()
        store = S3Storage("market-reports", client=s3)
        store.upload("reports/b.pdf", b"data")
        assert store.download("reports/b.pdf") == b"data"

    def test_missing_key(self):
        store = S3Storage("market-reports", client=FakeS3())
        with pytest.raises(StorageNotFound):
            store.download("reports/none.pdf")

    def test_other_client_error(self):
        s3 = FakeS3()
        s3.fail_with = client_error("AccessDenied")
        store = S3Storage("market-reports", client=s3)
        with pytest.raises(StorageError) as exc:
            store.download("reports/b.pdf")
        assert not isinstance(exc.value, StorageNotFound)
        with pytest.raises(StorageError):
            store.upload("reports/b.pdf", b"x")

    def test_ensure_bucket_creates_private_bucket(self):
        s3 = FakeS3()
        store = S3Storage("market-reports", region="eu-west-1", client=s3)
        assert store.ensure_bucket() is True
        assert s3.created_with["CreateBucketConfiguration"] == {"LocationConstraint": "eu-west-1"}
        assert s3.public_access["PublicAccessBlockConfiguration"]["BlockPublicAcls"] is True
        assert store.ensure_bucket() is False

    def test_check(self):
        s3 = FakeS3()
        store = S3Storage("market-reports", client=s3)
        assert store.check() == {"backend": "s3", "bucket": "market-reports", "bucket_exists": False, "error": None}


class TestStorageFromConfig:

    def test_local_without_bucket(self, tmp_path):
        store = storage_from_config({"AWS_S3_BUCKET": "", "STORAGE_DIR": str(tmp_path)})
        assert isinstance(store, LocalStorage)

    def test_s3_with_bucket(self):
        store = storage_from_config({"AWS_S3_BUCKET": "market-reports", "AWS_REGION": "us-east-1"})
        assert isinstance(store, S3Storage)
        assert store.bucket == "market-reports"
