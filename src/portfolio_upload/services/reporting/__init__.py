"""
Reporting Service client

Tells the downstream reporting service which files a committed batch stored,
using a category specific endpoint and payload.
"""

from portfolio_upload.services.reporting.client import ReportingClient, get_reporting_client
from portfolio_upload.services.reporting.routes import (
    NOTIFICATION_ROUTES,
    NotificationContext,
    NotificationRoute,
    ReportKind,
    build_payload,
    resolve_route,
)

__all__ = [
    "NOTIFICATION_ROUTES",
    "NotificationContext",
    "NotificationRoute",
    "ReportKind",
    "ReportingClient",
    "build_payload",
    "get_reporting_client",
    "resolve_route",
]
