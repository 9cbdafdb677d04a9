"""Tests for the notification dispatch table and payloads."""

from datetime import datetime, timezone

import pytest

from portfolio_upload.models.batch import UploadCategory, UtilityType
from portfolio_upload.services.reporting.routes import (
    NOTIFICATION_ROUTES,
    NotificationContext,
    ReportKind,
    add_one_year,
    build_payload,
    render_path,
    resolve_route,
)

NOW = datetime(2024, 5, 17, 14, 3, 9, tzinfo=timezone.utc)


def make_context(**overrides) -> NotificationContext:
    values = {
        "reference": "P100",
        "file_names": ["a.csv", "b.csv"],
        "now": NOW,
        "account_id": "ACC-7",
    }
    values.update(overrides)
    return NotificationContext(**values)


def test_every_category_has_a_routing_decision():
    """Each category is either routed or explicitly unreported."""
    routed_categories = {category for category, _ in NOTIFICATION_ROUTES}
    assert routed_categories == set(UploadCategory)


@pytest.mark.parametrize(
    "category,utility,expected_path",
    [
        (UploadCategory.LETTER_OF_AUTHORITY, None, "loa/P100"),
        (UploadCategory.SITE_LIST, None, "sitelist/ACC-7"),
        (UploadCategory.METER_SUPPLY_DATA, UtilityType.GAS, "supplymeterdata/gas/ACC-7"),
        (UploadCategory.METER_SUPPLY_DATA, UtilityType.ELECTRICITY, "supplymeterdata/electricity/ACC-7"),
        (UploadCategory.HISTORIC, None, "historical/P100"),
        (UploadCategory.BACKING_SHEET, UtilityType.GAS, "backingsheets/P100/gas"),
        (UploadCategory.BACKING_SHEET, UtilityType.ELECTRICITY, "backingsheets/P100/electricity"),
    ],
)
def test_route_paths(category, utility, expected_path):
    route = resolve_route(category, utility)

    assert render_path(route, make_context()) == expected_path


@pytest.mark.parametrize("category", [UploadCategory.TOPLINE, UploadCategory.OFFER])
def test_unreported_categories(category):
    assert resolve_route(category) is None


def test_resolve_route_rejects_unknown_variant():
    with pytest.raises(ValueError, match="MeterSupplyData"):
        resolve_route(UploadCategory.METER_SUPPLY_DATA)

    with pytest.raises(ValueError, match="gas"):
        resolve_route(UploadCategory.SITE_LIST, UtilityType.GAS)


def test_render_path_requires_account_id():
    route = resolve_route(UploadCategory.SITE_LIST)

    with pytest.raises(ValueError, match="account_id"):
        render_path(route, make_context(account_id=None))


def test_render_path_escapes_identifiers():
    route = resolve_route(UploadCategory.HISTORIC)

    assert render_path(route, make_context(reference="P 1/2")) == "historical/P%201%2F2"


def test_loa_payload():
    payload = build_payload(ReportKind.LETTER_OF_AUTHORITY, make_context())

    assert payload == {
        "id": "",
        "documentType": "loa",
        "accountId": "ACC-7",
        "blobFileName": "a.csv",
        "receivedAt": "2024-05-17T14:03:09",
        "expiresAt": "2025-05-17T14:03:09",
    }


@pytest.mark.parametrize(
    "kind,upload_type",
    [(ReportKind.SITE_LIST, "SITELIST"), (ReportKind.SUPPLY_DATA, "SUPPLYDATA")],
)
def test_account_scoped_payloads_carry_portfolio(kind, upload_type):
    payload = build_payload(kind, make_context())

    assert payload["portfolioId"] == "P100"
    assert payload["uploadType"] == upload_type
    assert payload["csvNames"] == ["a.csv", "b.csv"]
    assert payload["notes"] == "Uploaded 2024-05-17 14:03:09 UTC"


@pytest.mark.parametrize("kind", [ReportKind.HISTORICAL, ReportKind.BACKING_SHEET])
def test_reference_scoped_payloads(kind):
    payload = build_payload(kind, make_context())

    assert "portfolioId" not in payload
    assert payload["uploadType"] == kind.value
    assert payload["csvNames"] == ["a.csv", "b.csv"]


def test_build_payload_requires_files():
    with pytest.raises(ValueError):
        build_payload(ReportKind.HISTORICAL, make_context(file_names=[]))


def test_add_one_year_handles_leap_day():
    assert add_one_year(datetime(2024, 2, 29, 8, 0)) == datetime(2025, 2, 28, 8, 0)
    assert add_one_year(datetime(2023, 6, 1)) == datetime(2024, 6, 1)
