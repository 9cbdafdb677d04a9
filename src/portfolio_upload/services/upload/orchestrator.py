"""Orchestrator for all-or-nothing batch uploads."""

import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from portfolio_upload.core.exceptions import (
    EmptyLocation,
    NotificationFailure,
    RollbackFailure,
    StorageConflict,
    StorageFailure,
)
from portfolio_upload.core.logging import reference_context
from portfolio_upload.models.batch import (
    UNAUTHENTICATED_USER,
    Aborted,
    BatchOutcome,
    BatchPolicy,
    Committed,
    StoredObject,
    UploadCategory,
    UploadItem,
    UploadMetadata,
    UtilityType,
)
from portfolio_upload.services.reporting.client import ReportingClient
from portfolio_upload.services.reporting.routes import (
    NotificationContext,
    NotificationRoute,
    resolve_route,
)
from portfolio_upload.storage.base import ObjectStore
from portfolio_upload.storage.keys import generate_object_key

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Return the current time in UTC."""
    return datetime.now(timezone.utc)


class BatchUploadOrchestrator:
    """Stores a batch of files as a unit.

    Object storage has no multi-object transaction, so a failed batch is
    undone by deleting every key it attempted, including the key of the put
    that failed, since a failed put may still have written its object. A committed batch is then
    announced to the reporting service; a failed announcement is logged and
    leaves the batch committed, since the stored objects are already visible.
    """

    def __init__(
        self,
        store: ObjectStore,
        reporter: Optional[ReportingClient] = None,
        *,
        policy: BatchPolicy = BatchPolicy.FAIL_FAST,
        key_factory: Callable[[str], str] = generate_object_key,
        clock: Callable[[], datetime] = utc_now,
        user: str = UNAUTHENTICATED_USER,
    ):
        self.store = store
        self.reporter = reporter
        self.policy = policy
        self.key_factory = key_factory
        self.clock = clock
        self.user = user

    async def run(
        self,
        items: Iterable[UploadItem],
        category: UploadCategory,
        reference: str,
        *,
        account_id: Optional[str] = None,
        utility: Optional[UtilityType] = None,
    ) -> BatchOutcome:
        """Upload every item or none of them.

        Args:
            items: Files in upload order; each byte source is released before returning
            category: Kind of batch, drives metadata and notification
            reference: Portfolio or tender id the batch belongs to
            account_id: Account id, required by categories reported per account
            utility: Gas or electricity variant where the category has one

        Returns:
            Committed with the stored objects, or Aborted after compensation

        Raises:
            ValueError: If the category variant is unsupported or account_id is missing
        """
        items = list(items)
        expected_count = len(items)
        token = reference_context.set(reference)

        try:
            logger.info(
                f"Received request to upload [{expected_count}] [{category.value}] files "
                f"by user [{self.user}] for reference [{reference}]",
                extra={"category": category.value, "file_count": expected_count, "user": self.user},
            )

            route = resolve_route(category, utility)
            if route is not None and route.kind.requires_account_id and not account_id:
                raise ValueError(f"account_id is required for {category.value} uploads")

            if expected_count == 0:
                logger.info("Empty batch, nothing to upload or report")
                return Committed(stored_objects=[])

            succeeded: list[StoredObject] = []
            attempted: list[str] = []
            try:
                failure = await self._upload_items(items, category, reference, succeeded, attempted)
            except BaseException:
                # Cancelled or crashed mid-batch: never leave stored objects behind
                logger.warning(
                    "Batch interrupted, deleting attempted uploads",
                    extra={"stored_count": len(succeeded), "attempted_count": len(attempted)},
                )
                await self._rollback(attempted)
                raise

            if len(succeeded) != expected_count:
                return await self._abort(succeeded, attempted, expected_count, failure)

            return await self._notify(Committed(stored_objects=succeeded), route, reference, account_id)

        finally:
            for item in items:
                item.release()
            reference_context.reset(token)

    async def _upload_items(
        self,
        items: list[UploadItem],
        category: UploadCategory,
        reference: str,
        succeeded: list[StoredObject],
        attempted: list[str],
    ) -> Optional[StorageFailure]:
        """Upload items in order, appending each stored object to ``succeeded``.

        The location of every key is appended to ``attempted`` before its put
        starts, so compensation also covers puts that failed or never returned.
        Returns the first storage failure, if any.
        """
        first_failure: Optional[StorageFailure] = None

        for index, item in enumerate(items):
            logger.info(f"Attempting to upload file: [{item.filename}]")
            key = self.key_factory(item.filename)
            attempted.append(self.store.location_for(key))
            try:
                stored = await self._upload_item(item, key, category, reference)
            except StorageFailure as e:
                logger.error(
                    f"Failed to upload file: [{item.filename}]",
                    extra={"original_filename": item.filename, "key": e.key, "error": str(e)},
                    exc_info=True,
                )
                if isinstance(e, StorageConflict) and not e.after_retry:
                    # The key was taken before this batch touched it
                    attempted.pop()
                if first_failure is None:
                    first_failure = e
                if self.policy == BatchPolicy.FAIL_FAST:
                    skipped = len(items) - index - 1
                    if skipped:
                        logger.info(f"Skipping [{skipped}] remaining files")
                    break
                continue

            logger.info(f"Successfully uploaded: [{item.filename}]", extra={"location": stored.location})
            attempted[-1] = stored.location
            succeeded.append(stored)

        return first_failure

    async def _upload_item(
        self, item: UploadItem, key: str, category: UploadCategory, reference: str
    ) -> StoredObject:
        metadata = UploadMetadata(
            category=category,
            reference=reference,
            user=self.user,
            upload_time=self.clock(),
            original_filename=item.filename,
        )

        logger.info(f"Sending upload request for blob file: [{item.filename}] - [{key}]")
        try:
            location = await self.store.put(key, item.stream, metadata.to_tags())
        finally:
            item.release()

        if not location:
            raise EmptyLocation(f"Store returned no location for {key}", key=key)
        return StoredObject(key=key, location=location, metadata=metadata)

    async def _abort(
        self,
        succeeded: list[StoredObject],
        attempted: list[str],
        expected_count: int,
        failure: Optional[StorageFailure],
    ) -> Aborted:
        uploaded_count = len(succeeded)
        logger.info(f"Detected [{uploaded_count}/{expected_count}] uploads successful.")

        logger.info("Deleting attempted uploads from storage to return to earlier state.")
        rollback_failures = await self._rollback(attempted)

        deleted_count = len(attempted) - len(rollback_failures)
        reason = (
            f"partial failure, {uploaded_count}/{expected_count} succeeded, rollback attempted "
            f"({deleted_count} deleted, {len(rollback_failures)} failed)"
        )
        if failure is not None:
            reason = f"{reason}: {failure}"

        logger.error(
            "Batch aborted",
            extra={
                "uploaded_count": uploaded_count,
                "expected_count": expected_count,
                "rollback_failed": [f.location for f in rollback_failures],
            },
        )
        return Aborted(reason=reason, failure=failure, rollback_failures=rollback_failures)

    async def _rollback(self, locations: list[str]) -> list[RollbackFailure]:
        """Delete attempted objects in upload order, continuing past failures.

        Deleting a location whose put never wrote anything is a no-op for
        every backend.
        """
        failures: list[RollbackFailure] = []

        for location in locations:
            logger.info(f"Sending delete request for blob file: [{location}]")
            try:
                await self.store.delete(location)
            except StorageFailure as e:
                failure = RollbackFailure(location, e)
                logger.error(
                    f"Failed to delete uploaded file: [{location}]",
                    extra={"location": location, "error": str(e)},
                )
                failures.append(failure)

        return failures

    async def _notify(
        self,
        outcome: Committed,
        route: Optional[NotificationRoute],
        reference: str,
        account_id: Optional[str],
    ) -> Committed:
        if route is None:
            logger.info("Category is not reported, skipping notification")
            return outcome
        if self.reporter is None:
            logger.warning("Reporting service not configured, skipping notification")
            return outcome

        context = NotificationContext(
            reference=reference,
            file_names=outcome.file_names,
            now=self.clock(),
            account_id=account_id,
        )
        try:
            await self.reporter.notify(route, context)
        except NotificationFailure as e:
            logger.error(
                "Upload notification failed, batch stays committed",
                extra={"path": e.path, "status_code": e.status_code, "error": str(e)},
            )
            return Committed(stored_objects=outcome.stored_objects, notification_failure=e)

        return outcome
