"""Projection of fingerprint decisions onto pull request approvals."""

from __future__ import annotations

import logging

from prgate.connectors.base import ReviewSink
from prgate.decisions import ApprovalSession, Echo
from prgate.errors import PullRequestActionError
from prgate.index import ReviewIndex
from prgate.models import CommitOutcome, CommitReport, CommitStatus, PullRequestRef

logger = logging.getLogger(__name__)


def is_eligible(pr_url: str, index: ReviewIndex, session: ApprovalSession) -> bool:
    if not session.approved:
        return False
    if pr_url in session.pr_skipped:
        return False
    fingerprints = index.pr_fingerprints.get(pr_url, [])
    if not fingerprints:
        return False
    if all(fingerprint in session.declined for fingerprint in fingerprints):
        return False
    return all(fingerprint in session.approved for fingerprint in fingerprints)


def eligible_pull_requests(index: ReviewIndex, session: ApprovalSession) -> list[PullRequestRef]:
    return [index.pull_requests[url] for url in sorted(index.pr_fingerprints) if url in index.pull_requests and is_eligible(url, index, session)]


def approve_pull_request(sink: ReviewSink, pr: PullRequestRef, *, update_branches: bool = True) -> list[str]:
    """Approve and merge one pull request; returns the warnings of best-effort steps.

    Raises PullRequestActionError naming the failed step when the review
    cannot be created or neither auto-merge nor the squash merge fallback
    succeeds.
    """
    warnings: list[str] = []

    def _warn(message: str) -> None:
        logger.warning(message)
        warnings.append(message)

    if update_branches:
        if not pr.base_ref or not pr.head_ref:
            _warn(f"unable to determine refs for PR {pr.url}, skipping update-branch")
        else:
            try:
                behind = sink.is_branch_behind_base(pr.owner, pr.repo, pr.base_ref, pr.head_ref)
            except Exception as exc:
                _warn(f"failed to check branch status for PR {pr.url}: {exc}")
            else:
                if behind:
                    try:
                        sink.update_branch(pr.owner, pr.repo, pr.number)
                        logger.info("Updated branch for PR %s", pr.url)
                    except Exception as exc:
                        _warn(f"failed to update branch for PR {pr.url}: {exc}")
                else:
                    logger.info("Branch for PR %s is up-to-date with base (%s), skipping update-branch", pr.url, pr.base_ref)

    try:
        sink.create_approving_review(pr.owner, pr.repo, pr.number)
    except Exception as exc:
        raise PullRequestActionError(
            f"failed to create approval for PR {pr.url}: {exc}",
            pr_url=pr.url,
            step="create approving review",
        ) from exc

    if not pr.node_id:
        raise PullRequestActionError(
            f"PR {pr.url} has no node ID, cannot enable auto-merge",
            pr_url=pr.url,
            step="enable auto-merge",
        )

    try:
        sink.enable_auto_merge(pr.node_id)
        logger.info("Enabled auto-merge for PR %s", pr.url)
    except Exception as auto_merge_exc:
        _warn(f"enabling auto-merge failed for PR {pr.url}: {auto_merge_exc}; attempting squash merge")
        try:
            sink.squash_merge(pr.owner, pr.repo, pr.number, commit_message=f"Squash merge PR #{pr.number}: {pr.title}")
        except Exception as merge_exc:
            raise PullRequestActionError(
                f"squash merge failed for PR {pr.url}: {merge_exc}; original auto-merge error: {auto_merge_exc}",
                pr_url=pr.url,
                step="squash merge",
            ) from merge_exc
    return warnings


def commit_approvals(
    index: ReviewIndex,
    session: ApprovalSession,
    sink: ReviewSink,
    *,
    dry_run: bool = False,
    update_branches: bool = True,
    echo: Echo = print,
) -> CommitReport:
    report = CommitReport(
        dry_run=dry_run,
        approved_fingerprints=sorted(session.approved),
        declined_fingerprints=sorted(session.declined),
    )

    for url in sorted(index.pr_fingerprints):
        pr = index.pull_requests.get(url)
        title = pr.title if pr else ""
        if not index.pr_fingerprints[url]:
            continue

        if url in session.pr_skipped:
            echo(f"Not approving PR {url} (skipped due to a declined fingerprint)")
            report.outcomes.append(CommitOutcome(pr_url=url, title=title, status=CommitStatus.SKIPPED, reason="a fingerprint was declined"))
            continue

        if not is_eligible(url, index, session):
            report.outcomes.append(CommitOutcome(pr_url=url, title=title, status=CommitStatus.UNDECIDED, reason="not every fingerprint was approved"))
            continue

        if pr is None:
            echo(f"Could not find PR object for {url} to approve")
            report.outcomes.append(CommitOutcome(pr_url=url, status=CommitStatus.FAILED, step="resolve pull request", reason="pull request not collected"))
            continue

        if dry_run:
            echo(f"[dry-run] Would approve PR {url}")
            report.outcomes.append(CommitOutcome(pr_url=url, title=title, status=CommitStatus.WOULD_APPROVE))
            continue

        try:
            warnings = approve_pull_request(sink, pr, update_branches=update_branches)
        except PullRequestActionError as exc:
            echo(f"Failed to approve PR {url} ({exc.step}): {exc}")
            report.outcomes.append(CommitOutcome(pr_url=url, title=title, status=CommitStatus.FAILED, step=exc.step, reason=str(exc)))
            continue

        echo(f"Approved PR {url}")
        report.outcomes.append(CommitOutcome(pr_url=url, title=title, status=CommitStatus.APPROVED, warnings=warnings))

    logger.info(
        "Commit stage finished: approved=%s would_approve=%s failed=%s skipped=%s undecided=%s",
        len(report.by_status(CommitStatus.APPROVED)),
        len(report.by_status(CommitStatus.WOULD_APPROVE)),
        len(report.by_status(CommitStatus.FAILED)),
        len(report.by_status(CommitStatus.SKIPPED)),
        len(report.by_status(CommitStatus.UNDECIDED)),
    )
    return report
