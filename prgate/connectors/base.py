"""Connector interfaces for review sources and action sinks."""

from __future__ import annotations

from typing import Protocol

from prgate.models import Notification, PullRequestRef


class ReviewSource(Protocol):
    def list_pending_review_notifications(self) -> list[Notification]: ...

    def get_pull_request(self, owner: str, repo: str, number: int) -> PullRequestRef | None: ...

    def get_diff(self, pr: PullRequestRef) -> str: ...

    def get_pull_request_comment(self, pr: PullRequestRef) -> str: ...


class ReviewSink(Protocol):
    def is_branch_behind_base(self, owner: str, repo: str, base_ref: str, head_ref: str) -> bool: ...

    def update_branch(self, owner: str, repo: str, number: int) -> None: ...

    def create_approving_review(self, owner: str, repo: str, number: int) -> None: ...

    def enable_auto_merge(self, node_id: str) -> None: ...

    def squash_merge(self, owner: str, repo: str, number: int, *, commit_message: str = "") -> None: ...
