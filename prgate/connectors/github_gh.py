"""GitHub connectors backed by gh CLI for review collection and approval actions."""

from __future__ import annotations

import json
import logging
import re
import subprocess
import threading
import time
from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from prgate.connectors.base import ReviewSink, ReviewSource
from prgate.models import Notification, PullRequestRef
from prgate.text_cleaning import clean_dependabot_message

_RATE_LIMIT_RE = re.compile(r"(?:api|secondary) rate limit", re.IGNORECASE)
_NOT_FOUND_RE = re.compile(r"HTTP 404", re.IGNORECASE)
_JSON_ACCEPT = "application/vnd.github+json"
_DIFF_ACCEPT = "application/vnd.github.diff"
_AUTO_MERGE_MUTATION = (
    "mutation EnableAutoMerge($pullId:ID!, $mergeMethod:PullRequestMergeMethod!) "
    "{ enablePullRequestAutoMerge(input:{pullRequestId:$pullId, mergeMethod:$mergeMethod}) "
    "{ pullRequest { id } } }"
)
logger = logging.getLogger(__name__)


class GithubUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    login: str


class GithubRepository(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    owner: GithubUser


class GithubRef(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ref: str = ""
    repo: GithubRepository | None = None


class GithubNotificationSubject(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str | None = None
    type: str = ""


class GithubNotification(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    reason: str
    subject: GithubNotificationSubject
    repository: GithubRepository


class GithubPull(BaseModel):
    model_config = ConfigDict(extra="ignore")

    number: int
    html_url: str
    title: str = ""
    body: str | None = None
    node_id: str = ""
    state: str = "open"
    user: GithubUser | None = None
    base: GithubRef = Field(default_factory=GithubRef)
    head: GithubRef = Field(default_factory=GithubRef)


class GithubApiError(RuntimeError):
    pass


class GithubNotFoundError(GithubApiError):
    pass


class GithubRateLimitError(GithubApiError):
    def __init__(
        self,
        message: str,
        *,
        reset_at: datetime | None = None,
        retry_after_seconds: float | None = None,
    ) -> None:
        super().__init__(message)
        self.reset_at = reset_at
        self.retry_after_seconds = retry_after_seconds


class GithubGhClient:
    def __init__(
        self,
        gh_bin: str = "gh",
        *,
        rate_limit_retries: int = 2,
        secondary_backoff_base_seconds: float = 5.0,
        rate_limit_max_sleep_seconds: float = 90.0,
    ) -> None:
        self.gh_bin = gh_bin
        self.rate_limit_retries = max(0, rate_limit_retries)
        self.secondary_backoff_base_seconds = max(1.0, secondary_backoff_base_seconds)
        self.rate_limit_max_sleep_seconds = max(1.0, rate_limit_max_sleep_seconds)
        self._rate_limit_lock = threading.Lock()
        self._global_backoff_until = 0.0

    def get_paginated(self, endpoint: str, per_page: int = 100) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        page = 1
        while True:
            payload = self.get_page(endpoint, page=page, per_page=per_page)
            if not payload:
                break
            items.extend(payload)
            page += 1
        return items

    def get_page(self, endpoint: str, *, page: int, per_page: int = 100) -> list[dict[str, Any]]:
        query = f"{endpoint}{'&' if '?' in endpoint else '?'}per_page={per_page}&page={page}"
        payload = self.api_json(query)
        if not isinstance(payload, list):
            return []
        return payload

    def api_json(self, endpoint: str, method: str = "GET", body: dict[str, Any] | None = None) -> Any:
        output = self.api_text(endpoint, method=method, body=body, accept=_JSON_ACCEPT).strip()
        if not output:
            return None
        return json.loads(output)

    def api_text(
        self,
        endpoint: str,
        method: str = "GET",
        body: dict[str, Any] | None = None,
        *,
        accept: str = _JSON_ACCEPT,
        errors: str = "strict",
    ) -> str:
        """Run ``gh api`` and return stdout decoded as UTF-8.

        ``errors="surrogateescape"`` keeps undecodable bytes (diffs of non-UTF-8
        files) round-trippable instead of failing the call.
        """
        cmd = [self.gh_bin, "api", endpoint.lstrip("/"), "-X", method, "-H", f"Accept: {accept}"]
        for attempt in range(self.rate_limit_retries + 1):
            self._wait_for_global_backoff()
            if body is not None:
                proc = subprocess.run(
                    [*cmd, "--input", "-"],
                    input=json.dumps(body),
                    text=True,
                    encoding="utf-8",
                    errors=errors,
                    capture_output=True,
                    check=False,
                )
            else:
                proc = subprocess.run(cmd, text=True, encoding="utf-8", errors=errors, capture_output=True, check=False)

            if proc.returncode == 0:
                return proc.stdout

            stderr = proc.stderr.strip()
            if _NOT_FOUND_RE.search(stderr):
                raise GithubNotFoundError(f"gh api {method} {endpoint} returned 404: {stderr}")
            if not _RATE_LIMIT_RE.search(stderr):
                raise GithubApiError(f"gh api {method} {endpoint} failed: {stderr}")

            reset_at = self._get_rate_limit_reset_at()
            retry_after_seconds = self._compute_rate_limit_wait_seconds(reset_at=reset_at, attempt=attempt)
            self._set_global_backoff(retry_after_seconds)
            has_retry = attempt < self.rate_limit_retries

            logger.warning(
                "GitHub rate limit hit for %s (attempt %s/%s). backoff=%.1fs reset_at=%s",
                endpoint,
                attempt + 1,
                self.rate_limit_retries + 1,
                retry_after_seconds,
                reset_at.isoformat() if reset_at else "unknown",
            )

            if has_retry and retry_after_seconds <= self.rate_limit_max_sleep_seconds:
                continue

            raise GithubRateLimitError(
                f"gh api {method} {endpoint} failed: {stderr}",
                reset_at=reset_at,
                retry_after_seconds=retry_after_seconds,
            )
        raise GithubApiError(f"gh api failed unexpectedly after retries for endpoint={endpoint}")

    def _wait_for_global_backoff(self) -> None:
        while True:
            with self._rate_limit_lock:
                wait_seconds = self._global_backoff_until - time.monotonic()
            if wait_seconds <= 0:
                return
            time.sleep(wait_seconds)

    def _set_global_backoff(self, wait_seconds: float) -> None:
        target = time.monotonic() + max(0.0, wait_seconds)
        with self._rate_limit_lock:
            self._global_backoff_until = max(self._global_backoff_until, target)

    def _compute_rate_limit_wait_seconds(self, *, reset_at: datetime | None, attempt: int) -> float:
        if reset_at is not None:
            until_reset = (reset_at - datetime.now(UTC)).total_seconds()
            if until_reset > self.rate_limit_max_sleep_seconds:
                return until_reset
            return max(1.0, until_reset + 1.0)
        backoff = self.secondary_backoff_base_seconds * (2**attempt)
        return float(min(self.rate_limit_max_sleep_seconds, max(1.0, backoff)))

    def _get_rate_limit_reset_at(self) -> datetime | None:
        cmd = [self.gh_bin, "api", "rate_limit", "-X", "GET", "-H", f"Accept: {_JSON_ACCEPT}"]
        proc = subprocess.run(cmd, text=True, capture_output=True, check=False)
        if proc.returncode != 0:
            return None
        payload = proc.stdout.strip()
        if not payload:
            return None
        try:
            data = json.loads(payload)
        except json.JSONDecodeError:
            return None

        reset_epochs: list[int] = []
        resources = data.get("resources")
        if isinstance(resources, dict):
            for resource in resources.values():
                if not isinstance(resource, dict):
                    continue
                remaining = resource.get("remaining")
                reset = resource.get("reset")
                if isinstance(remaining, int) and remaining <= 0 and isinstance(reset, int):
                    reset_epochs.append(reset)
        if not reset_epochs:
            return None
        return datetime.fromtimestamp(max(reset_epochs), UTC)


def _build_client(
    gh_bin: str,
    rate_limit_retries: int,
    secondary_backoff_base_seconds: float,
    rate_limit_max_sleep_seconds: float,
) -> GithubGhClient:
    return GithubGhClient(
        gh_bin=gh_bin,
        rate_limit_retries=rate_limit_retries,
        secondary_backoff_base_seconds=secondary_backoff_base_seconds,
        rate_limit_max_sleep_seconds=rate_limit_max_sleep_seconds,
    )


class GithubGhSourceConnector(ReviewSource):
    def __init__(
        self,
        gh_bin: str = "gh",
        *,
        lookback_days: int = 3,
        per_page: int = 50,
        rate_limit_retries: int = 2,
        secondary_backoff_base_seconds: float = 5.0,
        rate_limit_max_sleep_seconds: float = 90.0,
    ) -> None:
        self.lookback_days = lookback_days
        self.per_page = per_page
        self.client = _build_client(gh_bin, rate_limit_retries, secondary_backoff_base_seconds, rate_limit_max_sleep_seconds)

    def list_pending_review_notifications(self) -> list[Notification]:
        since = (datetime.now(UTC) - timedelta(days=self.lookback_days)).strftime("%Y-%m-%dT%H:%M:%SZ")
        payload = self.client.get_paginated(f"notifications?all=true&since={since}", per_page=self.per_page)
        logger.debug("Fetched %s notifications since %s", len(payload), since)
        return [_normalize_notification(GithubNotification.model_validate(item)) for item in payload]

    def get_pull_request(self, owner: str, repo: str, number: int) -> PullRequestRef | None:
        try:
            payload = self.client.api_json(f"repos/{owner}/{repo}/pulls/{number}")
        except GithubNotFoundError:
            logger.debug("PR %s/%s#%s not found", owner, repo, number)
            return None
        if not payload:
            return None
        return _normalize_pull(GithubPull.model_validate(payload), owner=owner, repo=repo)

    def get_diff(self, pr: PullRequestRef) -> str:
        return self.client.api_text(
            f"repos/{pr.owner}/{pr.repo}/pulls/{pr.number}",
            accept=_DIFF_ACCEPT,
            errors="surrogateescape",
        )

    def get_pull_request_comment(self, pr: PullRequestRef) -> str:
        body = pr.body.strip()
        if not body:
            raise LookupError(f"no description found for PR {pr.url}")
        return clean_dependabot_message(body)


class GithubGhSinkConnector(ReviewSink):
    def __init__(
        self,
        gh_bin: str = "gh",
        *,
        auto_merge_method: str = "SQUASH",
        rate_limit_retries: int = 2,
        secondary_backoff_base_seconds: float = 5.0,
        rate_limit_max_sleep_seconds: float = 90.0,
    ) -> None:
        self.auto_merge_method = auto_merge_method
        self.client = _build_client(gh_bin, rate_limit_retries, secondary_backoff_base_seconds, rate_limit_max_sleep_seconds)

    def is_branch_behind_base(self, owner: str, repo: str, base_ref: str, head_ref: str) -> bool:
        if not (owner and repo and base_ref and head_ref):
            raise ValueError("owner, repo, base_ref and head_ref are required to compare branches")
        payload = self.client.api_json(f"repos/{owner}/{repo}/compare/{base_ref}...{head_ref}") or {}
        # status is one of identical, ahead, behind, diverged
        return payload.get("status") == "behind"

    def update_branch(self, owner: str, repo: str, number: int) -> None:
        self.client.api_json(f"repos/{owner}/{repo}/pulls/{number}/update-branch", method="PUT")

    def create_approving_review(self, owner: str, repo: str, number: int) -> None:
        self.client.api_json(f"repos/{owner}/{repo}/pulls/{number}/reviews", method="POST", body={"event": "APPROVE"})

    def enable_auto_merge(self, node_id: str) -> None:
        payload = self.client.api_json(
            "graphql",
            method="POST",
            body={
                "query": _AUTO_MERGE_MUTATION,
                "variables": {"pullId": node_id, "mergeMethod": self.auto_merge_method},
            },
        )
        errors = (payload or {}).get("errors")
        if errors:
            raise GithubApiError(f"enablePullRequestAutoMerge returned errors: {errors}")

    def squash_merge(self, owner: str, repo: str, number: int, *, commit_message: str = "") -> None:
        body = {"merge_method": "squash"}
        if commit_message:
            body["commit_message"] = commit_message
        self.client.api_json(f"repos/{owner}/{repo}/pulls/{number}/merge", method="PUT", body=body)


def _normalize_notification(item: GithubNotification) -> Notification:
    return Notification(
        id=item.id,
        reason=item.reason,
        subject_type=item.subject.type,
        subject_url=item.subject.url or "",
        repo_owner=item.repository.owner.login,
        repo_name=item.repository.name,
    )


def _normalize_pull(pull: GithubPull, *, owner: str, repo: str) -> PullRequestRef:
    base_repo = pull.base.repo
    return PullRequestRef(
        url=pull.html_url,
        number=pull.number,
        owner=base_repo.owner.login if base_repo else owner,
        repo=base_repo.name if base_repo else repo,
        title=pull.title,
        body=pull.body or "",
        node_id=pull.node_id,
        state=pull.state,
        author=pull.user.login if pull.user else "",
        base_ref=pull.base.ref,
        head_ref=pull.head.ref,
    )
