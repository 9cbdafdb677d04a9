"""HTTP client for the reporting service."""

import logging
from typing import Any, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from portfolio_upload.core.config import settings
from portfolio_upload.core.exceptions import NotificationFailure
from portfolio_upload.services.reporting.routes import (
    NotificationContext,
    NotificationRoute,
    build_payload,
    render_path,
)

logger = logging.getLogger(__name__)


class ReportingClient:
    """Posts upload-completed documents to the reporting service."""

    def __init__(
        self,
        base_url: str,
        api_path: str = "/portman-web/upload",
        timeout: float = 10.0,
        retries: int = 2,
        backoff: float = 0.5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Reporting service base URI
            api_path: Fixed path in front of every category path
            timeout: Per-request timeout in seconds
            retries: Extra attempts on transport errors (HTTP errors are never retried)
            backoff: Initial backoff in seconds between attempts
            transport: Optional httpx transport, used by tests
        """
        self.base_url = base_url.rstrip("/")
        self.api_path = api_path.strip("/")
        self.timeout = timeout
        self.retries = retries
        self.backoff = backoff
        self.transport = transport

    def url_for(self, path: str) -> str:
        if self.api_path:
            return f"{self.base_url}/{self.api_path}/{path}"
        return f"{self.base_url}/{path}"

    async def notify(self, route: NotificationRoute, context: NotificationContext) -> None:
        """Announce a committed batch.

        Raises:
            NotificationFailure: On a non-2xx response or when the service is unreachable
        """
        path = render_path(route, context)
        payload = build_payload(route.kind, context)

        logger.info(
            "Sending upload notification",
            extra={"path": path, "report_kind": route.kind.name, "file_count": len(context.file_names)},
        )
        await self.post(path, payload)
        logger.info("Upload notification accepted", extra={"path": path})

    async def post(self, path: str, payload: dict[str, Any]) -> None:
        url = self.url_for(path)
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.retries + 1),
            wait=wait_exponential(multiplier=self.backoff, max=5),
            retry=retry_if_exception_type(httpx.TransportError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                async for attempt in retrying:
                    with attempt:
                        response = await client.post(url, json=payload)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NotificationFailure(
                f"Reporting service returned {e.response.status_code} for {path}",
                path=path,
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise NotificationFailure(f"Reporting service unreachable for {path}: {e}", path=path) from e


def get_reporting_client() -> Optional[ReportingClient]:
    """Return a client for the configured reporting service, or None if unset."""
    if not settings.reporting_enabled:
        return None
    return ReportingClient(
        base_url=settings.REPORT_UPLOAD_API_URI,
        api_path=settings.REPORT_UPLOAD_API_PATH,
        timeout=settings.NOTIFICATION_TIMEOUT_SECONDS,
        retries=settings.NOTIFICATION_RETRIES,
    )
