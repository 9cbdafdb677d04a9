"""Object store selection."""

from functools import lru_cache

from portfolio_upload.core.config import settings
from portfolio_upload.storage.base import ObjectStore
from portfolio_upload.storage.gcs import GCSObjectStore
from portfolio_upload.storage.local import LocalObjectStore


@lru_cache(maxsize=1)
def get_object_store() -> ObjectStore:
    """Return the configured object store backend.

    Raises:
        ValueError: If STORAGE_BACKEND is unknown or GCS is selected without a bucket
    """
    backend = settings.STORAGE_BACKEND
    if backend == "gcs":
        if not settings.GCS_BUCKET_NAME:
            raise ValueError("GCS_BUCKET_NAME not configured")
        return GCSObjectStore(
            bucket_name=settings.GCS_BUCKET_NAME,
            project_id=settings.GCP_PROJECT_ID,
            policy=settings.storage_policy,
        )
    if backend == "local":
        return LocalObjectStore(settings.LOCAL_STORAGE_PATH, policy=settings.storage_policy)
    raise ValueError(f"Unknown STORAGE_BACKEND: {backend}")
