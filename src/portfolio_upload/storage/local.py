"""Local filesystem object store."""

import json
import logging
from pathlib import Path
from typing import BinaryIO

from portfolio_upload.core.exceptions import StorageConflict, StorageFailure
from portfolio_upload.storage.base import ObjectStore, StoragePolicy

logger = logging.getLogger(__name__)

METADATA_SUFFIX = ".metadata.json"


class LocalObjectStore(ObjectStore):
    """Local filesystem object store.

    Objects live directly under ``base_path``; each has a JSON metadata
    sidecar written as part of the same put.
    """

    def __init__(self, base_path: str | Path = "data/uploads", policy: StoragePolicy | None = None):
        super().__init__(policy)
        self.base_path = Path(base_path)

    def location_for(self, key: str) -> str:
        return str(self.base_path / key)

    def _put(self, key: str, data: BinaryIO, metadata: dict[str, str]) -> str:
        target = Path(self.location_for(key))
        sidecar = self.metadata_path(target)
        target.parent.mkdir(parents=True, exist_ok=True)

        if data.seekable():
            data.seek(0)

        try:
            handle = open(target, "xb")
        except FileExistsError as e:
            raise StorageConflict(f"Object already exists: {key}", key=key) from e

        try:
            with handle:
                # Stream write in chunks
                while chunk := data.read(65536):  # 64KB chunks
                    handle.write(chunk)
            sidecar.write_text(json.dumps(metadata, ensure_ascii=False), encoding="utf-8")
        except BaseException:
            # Never leave a blob without its metadata behind
            target.unlink(missing_ok=True)
            sidecar.unlink(missing_ok=True)
            raise

        return self.location_for(key)

    def _delete(self, location: str) -> None:
        target = Path(location)
        if not target.resolve().is_relative_to(self.base_path.resolve()):
            raise StorageFailure(f"Location outside storage root: {location}", location=location)

        try:
            target.unlink()
        except FileNotFoundError:
            logger.warning("Object already absent", extra={"location": location})
        self.metadata_path(target).unlink(missing_ok=True)

    def _is_transient(self, error: BaseException) -> bool:
        if isinstance(error, (FileExistsError, FileNotFoundError, PermissionError, IsADirectoryError)):
            return False
        return isinstance(error, OSError)

    def read_metadata(self, location: str) -> dict[str, str]:
        """Load the metadata sidecar of a stored object."""
        return json.loads(self.metadata_path(Path(location)).read_text(encoding="utf-8"))

    def get_backend_name(self) -> str:
        return "local"

    @staticmethod
    def metadata_path(target: Path) -> Path:
        return target.with_name(target.name + METADATA_SUFFIX)
