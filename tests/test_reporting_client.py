"""Unit tests for the reporting service client."""

import json
from datetime import datetime, timezone

import httpx
import pytest

from portfolio_upload.core.exceptions import NotificationFailure
from portfolio_upload.models.batch import UploadCategory, UtilityType
from portfolio_upload.services.reporting.client import ReportingClient, get_reporting_client
from portfolio_upload.services.reporting.routes import NotificationContext, resolve_route

CONTEXT = NotificationContext(
    reference="P1",
    file_names=["x.csv"],
    now=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
    account_id="A9",
)


def make_client(handler, **kwargs) -> ReportingClient:
    return ReportingClient(
        base_url="https://reports.test/",
        backoff=0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_notify_posts_json_to_category_path():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(204, request=request)

    client = make_client(handler)
    route = resolve_route(UploadCategory.METER_SUPPLY_DATA, UtilityType.ELECTRICITY)

    await client.notify(route, CONTEXT)

    assert len(seen) == 1
    assert seen[0].method == "POST"
    assert str(seen[0].url) == "https://reports.test/portman-web/upload/supplymeterdata/electricity/A9"
    body = json.loads(seen[0].content)
    assert body["portfolioId"] == "P1"
    assert body["csvNames"] == ["x.csv"]


@pytest.mark.asyncio
async def test_http_error_is_not_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503, text="unavailable", request=request)

    client = make_client(handler, retries=3)

    with pytest.raises(NotificationFailure) as exc_info:
        await client.post("historical/P1", {"csvNames": []})

    assert len(calls) == 1
    assert exc_info.value.status_code == 503
    assert exc_info.value.path == "historical/P1"


@pytest.mark.asyncio
async def test_transport_error_retried_then_reported():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(handler, retries=2)

    with pytest.raises(NotificationFailure, match="unreachable") as exc_info:
        await client.post("historical/P1", {})

    assert len(calls) == 3
    assert exc_info.value.status_code is None


@pytest.mark.asyncio
async def test_transport_error_recovers_on_retry():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ReadTimeout("slow", request=request)
        return httpx.Response(200, json={"ok": True}, request=request)

    client = make_client(handler, retries=1)

    await client.post("historical/P1", {})

    assert len(calls) == 2


def test_url_for_without_api_path():
    client = ReportingClient(base_url="https://reports.test", api_path="")

    assert client.url_for("loa/P1") == "https://reports.test/loa/P1"


def test_get_reporting_client_disabled_without_uri(monkeypatch):
    from portfolio_upload.core.config import settings

    monkeypatch.setattr(settings, "REPORT_UPLOAD_API_URI", "")

    assert get_reporting_client() is None


def test_get_reporting_client_from_settings(monkeypatch):
    from portfolio_upload.core.config import settings

    monkeypatch.setattr(settings, "REPORT_UPLOAD_API_URI", "https://portman.example")
    monkeypatch.setattr(settings, "NOTIFICATION_RETRIES", 4)

    client = get_reporting_client()

    assert client is not None
    assert client.retries == 4
    assert client.url_for("loa/P1") == "https://portman.example/portman-web/upload/loa/P1"
