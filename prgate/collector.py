"""Fan-out collection of pending review requests into a ReviewIndex."""

from __future__ import annotations

import logging
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait

from prgate.connectors.base import ReviewSource
from prgate.errors import CollectionError
from prgate.fingerprint import extract_fingerprints
from prgate.index import ReviewIndex
from prgate.models import Notification

logger = logging.getLogger(__name__)

REVIEW_REQUESTED = "review_requested"
DEFAULT_MAX_WORKERS = 10


def resolve_notification(
    source: ReviewSource,
    notification: Notification,
    index: ReviewIndex,
    *,
    review_reason: str = REVIEW_REQUESTED,
) -> bool:
    """Resolve one notification and merge its fingerprints; returns False when skipped."""
    if notification.reason != review_reason:
        return False
    if notification.subject_type != "PullRequest":
        logger.debug("Skipping notification %s with subject type %s", notification.id, notification.subject_type)
        return False
    number = notification.pull_number
    if number is None:
        logger.debug("Skipping notification %s without a pull request subject", notification.id)
        return False

    subject = notification.display_name
    try:
        pr = source.get_pull_request(notification.repo_owner, notification.repo_name, number)
    except Exception as exc:
        raise CollectionError(f"Failed to fetch pull request {subject}: {exc}", step="fetch pull request", subject=subject) from exc
    if pr is None or not pr.is_open:
        logger.debug("Skipping %s (missing or not open)", subject)
        return False

    try:
        diff_text = source.get_diff(pr)
    except Exception as exc:
        raise CollectionError(f"Failed to fetch diff for {pr.url}: {exc}", step="fetch diff", subject=pr.url) from exc

    fingerprints, change_lines = extract_fingerprints(diff_text)
    index.merge_pull_request(pr.author, pr, fingerprints, change_lines)
    logger.debug("Merged %s fingerprints from %s", len(fingerprints), pr.url)
    return True


def collect_review_index(
    source: ReviewSource,
    *,
    max_workers: int = DEFAULT_MAX_WORKERS,
    review_reason: str = REVIEW_REQUESTED,
    progress_every: int = 25,
) -> ReviewIndex:
    """Build the fingerprint/PR indices for every pending review request.

    Resolutions run on a bounded thread pool. The batch fails as one unit: the
    first resolution error cancels queued work and is re-raised once in-flight
    tasks have drained, so callers never see a partially built index.
    """
    try:
        notifications = source.list_pending_review_notifications()
    except Exception as exc:
        raise CollectionError(f"Failed to list pending review notifications: {exc}", step="list notifications") from exc

    index = ReviewIndex()
    total = len(notifications)
    if not notifications:
        logger.info("No notifications to resolve")
        return index

    max_workers = max(1, max_workers)
    progress_every = max(1, progress_every)
    logger.info("Resolving %s notifications (workers=%s)", total, max_workers)

    completed = 0
    merged = 0
    failure: BaseException | None = None
    started_at = time.monotonic()
    notification_iter = iter(notifications)

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        pending: set[Future[bool]] = set()

        def _submit_next() -> bool:
            try:
                notification = next(notification_iter)
            except StopIteration:
                return False
            pending.add(pool.submit(resolve_notification, source, notification, index, review_reason=review_reason))
            return True

        for _ in range(max_workers):
            if not _submit_next():
                break

        while pending:
            done, _ = wait(pending, return_when=FIRST_COMPLETED)
            pending.difference_update(done)
            for future in done:
                exc = future.exception()
                if exc is not None:
                    if failure is None:
                        failure = exc
                    continue
                completed += 1
                if future.result():
                    merged += 1
                if completed % progress_every == 0:
                    logger.info("Collection progress: %s/%s resolved (%s merged)", completed, total, merged)

            if failure is not None:
                # Queued tasks never started; in-flight ones are drained by the executor.
                for future in list(pending):
                    future.cancel()
                pending = {future for future in pending if not future.cancelled()}
                continue

            while len(pending) < max_workers:
                if not _submit_next():
                    break

    if failure is not None:
        if isinstance(failure, CollectionError):
            raise failure
        raise CollectionError(f"Collection failed: {failure}", step="resolve notification") from failure

    logger.info(
        "Collected %s pull requests and %s fingerprints from %s notifications in %.1fs",
        len(index.pull_requests),
        len(index.fingerprint_prs),
        total,
        time.monotonic() - started_at,
    )
    return index
