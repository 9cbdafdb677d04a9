"""
Notification dispatch table.

Maps an upload category (plus utility variant where the reporting service
distinguishes gas from electricity) to the reporting endpoint and payload
shape announcing a completed upload.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from urllib.parse import quote

from portfolio_upload.models.batch import UploadCategory, UtilityType

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"


class ReportKind(str, Enum):
    """Payload shape expected by the reporting service."""

    LETTER_OF_AUTHORITY = "loa"
    SITE_LIST = "SITELIST"
    SUPPLY_DATA = "SUPPLYDATA"
    HISTORICAL = "HISTORICAL"
    BACKING_SHEET = "BACKINGSHEET"

    @property
    def requires_account_id(self) -> bool:
        return self in (ReportKind.LETTER_OF_AUTHORITY, ReportKind.SITE_LIST, ReportKind.SUPPLY_DATA)


@dataclass(frozen=True)
class NotificationRoute:
    """Reporting endpoint for one category variant."""

    kind: ReportKind
    path: str  # placeholders: {reference}, {account_id}


@dataclass(frozen=True)
class NotificationContext:
    """Everything a payload is built from."""

    reference: str
    file_names: list[str]
    now: datetime
    account_id: Optional[str] = None


# None = the category is stored but never reported
NOTIFICATION_ROUTES: dict[tuple[UploadCategory, Optional[UtilityType]], Optional[NotificationRoute]] = {
    (UploadCategory.LETTER_OF_AUTHORITY, None): NotificationRoute(
        ReportKind.LETTER_OF_AUTHORITY, "loa/{reference}"
    ),
    (UploadCategory.SITE_LIST, None): NotificationRoute(ReportKind.SITE_LIST, "sitelist/{account_id}"),
    (UploadCategory.METER_SUPPLY_DATA, UtilityType.GAS): NotificationRoute(
        ReportKind.SUPPLY_DATA, "supplymeterdata/gas/{account_id}"
    ),
    (UploadCategory.METER_SUPPLY_DATA, UtilityType.ELECTRICITY): NotificationRoute(
        ReportKind.SUPPLY_DATA, "supplymeterdata/electricity/{account_id}"
    ),
    (UploadCategory.HISTORIC, None): NotificationRoute(ReportKind.HISTORICAL, "historical/{reference}"),
    (UploadCategory.BACKING_SHEET, UtilityType.GAS): NotificationRoute(
        ReportKind.BACKING_SHEET, "backingsheets/{reference}/gas"
    ),
    (UploadCategory.BACKING_SHEET, UtilityType.ELECTRICITY): NotificationRoute(
        ReportKind.BACKING_SHEET, "backingsheets/{reference}/electricity"
    ),
    (UploadCategory.TOPLINE, None): None,
    (UploadCategory.OFFER, None): None,
}


def resolve_route(
    category: UploadCategory, utility: Optional[UtilityType] = None
) -> Optional[NotificationRoute]:
    """Look up the notification route for a category variant.

    Raises:
        ValueError: If the category does not come in that variant
    """
    try:
        return NOTIFICATION_ROUTES[(category, utility)]
    except KeyError:
        variant = utility.value if utility else "no utility"
        raise ValueError(f"Unsupported upload variant: {category.value} ({variant})") from None


def render_path(route: NotificationRoute, context: NotificationContext) -> str:
    """Fill the route placeholders with URL-safe identifiers."""
    if route.kind.requires_account_id and not context.account_id:
        raise ValueError(f"account_id is required for {route.kind.name} notifications")
    return route.path.format(
        reference=quote(context.reference, safe=""),
        account_id=quote(context.account_id or "", safe=""),
    )


def add_one_year(moment: datetime) -> datetime:
    try:
        return moment.replace(year=moment.year + 1)
    except ValueError:
        # 29 February
        return moment.replace(year=moment.year + 1, day=28)


def build_payload(kind: ReportKind, context: NotificationContext) -> dict[str, Any]:
    """Build the JSON document for one notification.

    Letters of authority announce a single document, the first stored file.
    Every other kind lists all stored files.
    """
    if not context.file_names:
        raise ValueError("Cannot build a notification without files")

    if kind == ReportKind.LETTER_OF_AUTHORITY:
        return {
            "id": "",
            "documentType": kind.value,
            "accountId": context.account_id,
            "blobFileName": context.file_names[0],
            "receivedAt": context.now.strftime(TIMESTAMP_FORMAT),
            "expiresAt": add_one_year(context.now).strftime(TIMESTAMP_FORMAT),
        }

    payload: dict[str, Any] = {}
    if kind in (ReportKind.SITE_LIST, ReportKind.SUPPLY_DATA):
        payload["portfolioId"] = context.reference
    payload["uploadType"] = kind.value
    payload["csvNames"] = list(context.file_names)
    payload["notes"] = f"Uploaded {context.now.strftime('%Y-%m-%d %H:%M:%S')} UTC"
    return payload
