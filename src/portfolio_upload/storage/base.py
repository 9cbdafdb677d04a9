"""Abstract object store interface."""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, BinaryIO, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from portfolio_upload.core.exceptions import StorageConflict, StorageFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class StoragePolicy:
    """Retry and timeout settings for every put and delete."""

    retries: int = 3  # extra attempts after the first
    per_call_timeout: float = 30.0  # seconds
    backoff_initial: float = 1.0
    backoff_max: float = 10.0


class ObjectStore(ABC):
    """Abstract base class for object store backends.

    Subclasses implement blocking ``_put``/``_delete`` primitives. This class
    runs them off the event loop with a per-call timeout and retries transient
    errors with exponential backoff. Conflicts are never retried.
    """

    def __init__(self, policy: StoragePolicy | None = None):
        self.policy = policy or StoragePolicy()

    async def put(self, key: str, data: BinaryIO, metadata: dict[str, str]) -> str:
        """Store ``data`` under a new ``key`` together with its metadata.

        Args:
            key: Storage key, must not exist yet
            data: File content stream
            metadata: Attributes written with the object

        Returns:
            Location of the stored object

        Raises:
            StorageConflict: If the key already exists, ``after_retry`` tells whether
                an earlier attempt ran first
            StorageFailure: If the put fails after retries
        """
        attempts = 0

        def put_once(*args: Any) -> str:
            nonlocal attempts
            attempts += 1
            return self._put(*args)

        try:
            return await self._call(put_once, key, data, metadata, retry_timeouts=False)
        except StorageConflict as e:
            e.after_retry = attempts > 1
            raise
        except StorageFailure:
            raise
        except Exception as e:
            raise self._translate_error(e, key=key) from e

    async def delete(self, location: str) -> None:
        """Remove the object at ``location``, all versions included.

        Raises:
            StorageFailure: If the delete fails after retries
        """
        try:
            await self._call(self._delete, location, retry_timeouts=True)
        except StorageFailure:
            raise
        except Exception as e:
            raise self._translate_error(e, location=location) from e

    async def _call(self, func: Callable[..., T], *args: Any, retry_timeouts: bool) -> T:
        def should_retry(exc: BaseException) -> bool:
            if isinstance(exc, StorageConflict):
                return False
            if isinstance(exc, asyncio.TimeoutError):
                return retry_timeouts
            return self._is_transient(exc)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.policy.retries + 1),
            wait=wait_exponential(
                multiplier=self.policy.backoff_initial, max=self.policy.backoff_max
            ),
            retry=retry_if_exception(should_retry),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return await retrying(self._run_settled, func, *args)

    async def _run_settled(self, func: Callable[..., T], *args: Any) -> T:
        """Run a blocking primitive in a worker thread under the per-call timeout.

        A timed out or cancelled call still waits for its worker thread to
        finish, so no write lands after the caller has moved on to
        compensation.
        """
        worker = asyncio.ensure_future(asyncio.to_thread(func, *args))
        try:
            return await asyncio.wait_for(asyncio.shield(worker), timeout=self.policy.per_call_timeout)
        except BaseException:
            if not worker.done():
                logger.warning(
                    "Waiting for interrupted storage call to settle",
                    extra={"operation": getattr(func, "__name__", str(func))},
                )
                await asyncio.wait([worker])
                if not worker.cancelled() and worker.exception() is not None:
                    logger.debug("Interrupted storage call failed", exc_info=worker.exception())
            raise

    def _translate_error(
        self, error: Exception, *, key: str | None = None, location: str | None = None
    ) -> StorageFailure:
        """Map a backend exception onto the storage error taxonomy."""
        target = key or location
        if isinstance(error, asyncio.TimeoutError):
            message = f"Timed out after {self.policy.per_call_timeout}s: {target}"
        else:
            message = f"{type(error).__name__}: {error}"
        return StorageFailure(message, key=key, location=location)

    @abstractmethod
    def location_for(self, key: str) -> str:
        """Location a put of ``key`` stores its object at."""
        pass

    @abstractmethod
    def _put(self, key: str, data: BinaryIO, metadata: dict[str, str]) -> str:
        """Blocking put, must fail with StorageConflict if the key exists."""
        pass

    @abstractmethod
    def _delete(self, location: str) -> None:
        """Blocking delete of every version of the object."""
        pass

    @abstractmethod
    def _is_transient(self, error: BaseException) -> bool:
        """Whether an error is worth another attempt."""
        pass

    @abstractmethod
    def get_backend_name(self) -> str:
        """Return backend identifier."""
        pass
