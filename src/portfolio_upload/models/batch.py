"""Batch upload domain models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import PurePosixPath
from typing import BinaryIO, Optional, Union

from portfolio_upload.core.exceptions import NotificationFailure, RollbackFailure, StorageFailure

# No auth model exists yet; a real identity replaces this through the same parameter
UNAUTHENTICATED_USER = "Unauthenticated"


class UploadCategory(str, Enum):
    """Kind of file batch, drives metadata and notification routing."""

    METER_SUPPLY_DATA = "MeterSupplyData"
    HISTORIC = "Historic"
    LETTER_OF_AUTHORITY = "LetterOfAuthority"
    SITE_LIST = "SiteList"
    BACKING_SHEET = "BackingSheet"
    TOPLINE = "Topline"
    OFFER = "Offer"

    @property
    def reference_field(self) -> str:
        """Metadata key holding the business reference for this category."""
        if self in (UploadCategory.BACKING_SHEET, UploadCategory.OFFER):
            return "tenderId"
        return "portfolioId"


class UtilityType(str, Enum):
    """Utility sub-variant for supply data and backing sheets."""

    GAS = "gas"
    ELECTRICITY = "electricity"


class BatchPolicy(str, Enum):
    """How the upload loop reacts to a failed put."""

    FAIL_FAST = "fail_fast"  # stop at the first failure, skip the rest
    BEST_EFFORT = "best_effort"  # attempt every item, then compensate


@dataclass
class UploadItem:
    """One input file. The byte source is consumed once and released once."""

    stream: BinaryIO
    filename: str
    _released: bool = field(default=False, init=False, repr=False)

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Close the byte source. Further calls are no-ops."""
        if self._released:
            return
        self._released = True
        self.stream.close()


@dataclass(frozen=True)
class UploadMetadata:
    """Provenance attributes stamped on every stored object."""

    category: UploadCategory
    reference: str
    user: str
    upload_time: datetime
    original_filename: str

    def to_tags(self) -> dict[str, str]:
        """Render as the object store metadata mapping."""
        return {
            "uploadType": self.category.value,
            self.category.reference_field: self.reference,
            "user": self.user,
            "uploadTime": self.upload_time.isoformat(),
            "originalFilename": self.original_filename,
        }


@dataclass(frozen=True)
class StoredObject:
    """An object left in storage by a successful put."""

    key: str
    location: str
    metadata: UploadMetadata

    @property
    def file_name(self) -> str:
        """Stored file name, as reported to clients and the reporting service."""
        return PurePosixPath(self.location.replace("\\", "/")).name


@dataclass(frozen=True)
class Committed:
    """Every item was stored. Notification problems do not undo the batch."""

    stored_objects: list[StoredObject]
    notification_failure: Optional[NotificationFailure] = None

    @property
    def committed(self) -> bool:
        return True

    @property
    def file_names(self) -> list[str]:
        return [stored.file_name for stored in self.stored_objects]


@dataclass(frozen=True)
class Aborted:
    """At least one item failed; already-stored objects were compensated."""

    reason: str
    failure: Optional[StorageFailure] = None
    rollback_failures: list[RollbackFailure] = field(default_factory=list)

    @property
    def committed(self) -> bool:
        return False


BatchOutcome = Union[Committed, Aborted]
