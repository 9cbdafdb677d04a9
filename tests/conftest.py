"""Pytest configuration and shared fixtures."""

import io
from datetime import datetime, timezone
from typing import BinaryIO

import pytest

from portfolio_upload.core.exceptions import StorageConflict, StorageFailure
from portfolio_upload.models.batch import UploadItem
from portfolio_upload.storage.base import ObjectStore, StoragePolicy

FIXED_NOW = datetime(2024, 3, 1, 9, 30, 0, tzinfo=timezone.utc)


class TrackingStream(io.BytesIO):
    """BytesIO that counts close() calls."""

    def __init__(self, data: bytes):
        super().__init__(data)
        self.close_count = 0

    def close(self) -> None:
        self.close_count += 1
        super().close()


class InMemoryObjectStore(ObjectStore):
    """Object store double that records every call.

    Failures are scripted by 1-based put call number or by key. A put listed
    in ``drop_response_at`` stores its object and then fails with a transient
    connection error, as when a response is lost after the write landed.
    """

    def __init__(
        self, fail_puts_at=(), empty_location_at=(), fail_deletes_for=(), drop_response_at=(), retries=0
    ):
        super().__init__(StoragePolicy(retries=retries, per_call_timeout=5.0, backoff_initial=0, backoff_max=0))
        self.objects: dict[str, tuple[bytes, dict[str, str]]] = {}
        self.put_calls: list[str] = []
        self.delete_calls: list[str] = []
        self.fail_puts_at = set(fail_puts_at)
        self.empty_location_at = set(empty_location_at)
        self.fail_deletes_for = set(fail_deletes_for)
        self.drop_response_at = set(drop_response_at)

    def location_for(self, key: str) -> str:
        return f"mem://uploads/{key}"

    def _put(self, key: str, data: BinaryIO, metadata: dict[str, str]) -> str:
        self.put_calls.append(key)
        call_number = len(self.put_calls)
        if call_number in self.fail_puts_at:
            raise StorageFailure("simulated put failure", key=key)
        if key in self.objects:
            raise StorageConflict(f"Object already exists: {key}", key=key)
        self.objects[key] = (data.read(), dict(metadata))
        if call_number in self.drop_response_at:
            raise ConnectionError("connection reset after write")
        if call_number in self.empty_location_at:
            return ""
        return self.location_for(key)

    def _delete(self, location: str) -> None:
        self.delete_calls.append(location)
        key = location.rsplit("/", 1)[-1]
        if key in self.fail_deletes_for:
            raise StorageFailure("simulated delete failure", location=location)
        self.objects.pop(key, None)

    def _is_transient(self, error: BaseException) -> bool:
        return isinstance(error, ConnectionError)

    def get_backend_name(self) -> str:
        return "memory"


@pytest.fixture
def store():
    return InMemoryObjectStore()


@pytest.fixture
def make_items():
    """Build upload items backed by tracking streams."""

    def _make(*filenames: str) -> list[UploadItem]:
        return [
            UploadItem(stream=TrackingStream(f"content of {name}".encode()), filename=name)
            for name in filenames
        ]

    return _make


@pytest.fixture
def sequential_keys():
    """Deterministic key factory: key-1.csv, key-2.csv, ..."""
    counter = {"value": 0}

    def _factory(filename: str) -> str:
        counter["value"] += 1
        extension = filename[filename.rfind("."):] if "." in filename else ""
        return f"key-{counter['value']}{extension}"

    return _factory
