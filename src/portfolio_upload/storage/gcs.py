"""Google Cloud Storage object store."""

import logging
import mimetypes
from typing import BinaryIO, Optional

from google.api_core.exceptions import NotFound, PreconditionFailed
from google.api_core.retry import if_transient_error
from google.cloud import storage

from portfolio_upload.core.exceptions import StorageConflict, StorageFailure
from portfolio_upload.storage.base import ObjectStore, StoragePolicy

logger = logging.getLogger(__name__)


class GCSObjectStore(ObjectStore):
    """Google Cloud Storage object store.

    Library-level retries are disabled on every call; the retry policy of
    ``ObjectStore`` applies instead.
    """

    def __init__(self, bucket_name: str, project_id: str = "", policy: StoragePolicy | None = None):
        super().__init__(policy)
        self.bucket_name = bucket_name
        self.project_id = project_id
        self._client: Optional[storage.Client] = None
        self._bucket: Optional[storage.Bucket] = None

    def _get_bucket(self) -> storage.Bucket:
        """Lazy-load and cache GCS bucket."""
        if self._bucket is None:
            if not self.bucket_name:
                raise ValueError("GCS_BUCKET_NAME not configured")

            self._client = storage.Client(project=self.project_id or None)
            self._bucket = self._client.bucket(self.bucket_name)

        return self._bucket

    def location_for(self, key: str) -> str:
        return f"gs://{self.bucket_name}/{key}"

    def _put(self, key: str, data: BinaryIO, metadata: dict[str, str]) -> str:
        blob = self._get_bucket().blob(key)
        # Metadata travels with the upload request, so the object is never visible without it
        blob.metadata = metadata
        content_type = mimetypes.guess_type(key)[0] or "application/octet-stream"

        try:
            blob.upload_from_file(
                data,
                rewind=True,
                content_type=content_type,
                if_generation_match=0,
                timeout=self.policy.per_call_timeout,
                retry=None,
            )
        except PreconditionFailed as e:
            raise StorageConflict(f"Object already exists: {key}", key=key) from e

        return self.location_for(key)

    def _delete(self, location: str) -> None:
        prefix = self.location_for("")
        if not location.startswith(prefix) or location == prefix:
            raise StorageFailure(f"Location outside bucket {self.bucket_name}: {location}", location=location)
        blob_name = location[len(prefix):]

        bucket = self._get_bucket()
        versions = [
            blob
            for blob in bucket.list_blobs(
                prefix=blob_name, versions=True, timeout=self.policy.per_call_timeout, retry=None
            )
            if blob.name == blob_name
        ]
        if not versions:
            logger.warning("Object already absent", extra={"location": location})
            return

        for version in versions:
            try:
                bucket.delete_blob(
                    blob_name,
                    generation=version.generation,
                    timeout=self.policy.per_call_timeout,
                    retry=None,
                )
            except NotFound:
                logger.warning(
                    "Object version already absent",
                    extra={"location": location, "generation": version.generation},
                )

    def _is_transient(self, error: BaseException) -> bool:
        return if_transient_error(error)

    def get_backend_name(self) -> str:
        return "gcs"
