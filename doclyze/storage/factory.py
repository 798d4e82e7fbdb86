from doclyze.config.settings import Settings
from doclyze.storage.base import BaseObjectStorage
from doclyze.storage.local_adapter import LocalDiskStorage
from doclyze.storage.s3_adapter import S3Storage


class StorageFactory:
    """Creates the object storage adapter based on settings."""

    SUPPORTED: tuple[str, ...] = ("local", "s3")

    @classmethod
    def create(cls, settings: Settings) -> BaseObjectStorage:
        backend = settings.storage_backend.lower()
        if backend == "local":
            return LocalDiskStorage(root=settings.storage_files_root, bucket=settings.storage_bucket)
        if backend == "s3":
            return S3Storage(bucket=settings.storage_bucket, region=settings.s3_region)
        raise ValueError(
            f"Unknown storage backend '{backend}'. Choose from: {list(cls.SUPPORTED)}"
        )
