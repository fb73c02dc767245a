from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from labintake.storage.exceptions import StorageError
from labintake.storage.s3_adapter import S3ObjectStorage


def _client_error() -> ClientError:
    return ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject")


class TestS3ObjectStorage:
    def test_requires_bucket(self) -> None:
        with pytest.raises(ValueError, match="storage_s3_bucket"):
            S3ObjectStorage(bucket="", client=MagicMock())

    def test_put_uploads_and_returns_regional_url(self) -> None:
        client = MagicMock()
        storage = S3ObjectStorage(bucket="reports", region="eu-west-1", client=client)

        url = storage.put("/lab-reports/7/a.pdf", b"%PDF", "application/pdf")

        client.put_object.assert_called_once_with(
            Bucket="reports", Key="lab-reports/7/a.pdf", Body=b"%PDF", ContentType="application/pdf"
        )
        assert url == "https://reports.s3.eu-west-1.amazonaws.com/lab-reports/7/a.pdf"

    def test_endpoint_url_takes_precedence(self) -> None:
        storage = S3ObjectStorage(
            bucket="reports", endpoint_url="http://minio:9000/", client=MagicMock()
        )

        assert storage.put("a.pdf", b"x", "application/pdf") == "http://minio:9000/reports/a.pdf"

    def test_put_failure_raises_storage_error(self) -> None:
        client = MagicMock()
        client.put_object.side_effect = _client_error()
        storage = S3ObjectStorage(bucket="reports", client=client)

        with pytest.raises(StorageError, match="S3 put failed"):
            storage.put("a.pdf", b"x", "application/pdf")

    def test_delete_failure_returns_false(self) -> None:
        client = MagicMock()
        client.delete_object.side_effect = _client_error()
        storage = S3ObjectStorage(bucket="reports", client=client)

        assert storage.delete("a.pdf") is False

    def test_delete_success(self) -> None:
        client = MagicMock()
        storage = S3ObjectStorage(bucket="reports", client=client)

        assert storage.delete("/a.pdf") is True
        client.delete_object.assert_called_once_with(Bucket="reports", Key="a.pdf")
