from pathlib import Path

from labintake.config.settings import Settings
from labintake.storage.base import BaseObjectStorage
from labintake.storage.local_adapter import LocalObjectStorage
from labintake.storage.s3_adapter import S3ObjectStorage


class ObjectStorageFactory:
    """Creates the object storage adapter selected by ``storage_disk``."""

    DISKS = ("local", "s3")

    @classmethod
    def create(cls, settings: Settings) -> BaseObjectStorage:
        disk = settings.storage_disk.lower()
        if disk == "local":
            return LocalObjectStorage(
                public_base_url=settings.storage_public_base_url,
                files_root=Path(settings.storage_root),
            )
        if disk == "s3":
            return S3ObjectStorage(
                bucket=settings.storage_s3_bucket,
                region=settings.storage_s3_region,
                endpoint_url=settings.storage_s3_endpoint_url,
            )
        raise ValueError(f"Unknown storage disk '{disk}'. Choose from: {list(cls.DISKS)}")
