"""Core Pydantic domain models for prgate."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class CommitStatus(str, Enum):
    APPROVED = "approved"
    WOULD_APPROVE = "would_approve"
    FAILED = "failed"
    SKIPPED = "skipped"
    UNDECIDED = "undecided"


class Notification(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    reason: str
    subject_type: str = "PullRequest"
    subject_url: str = ""
    repo_owner: str
    repo_name: str

    @property
    def pull_number(self) -> int | None:
        if "/pulls/" not in self.subject_url:
            return None
        raw = self.subject_url.split("/pulls/", maxsplit=1)[1].strip("/")
        try:
            return int(raw)
        except ValueError:
            return None

    @property
    def display_name(self) -> str:
        number = self.pull_number
        suffix = f"#{number}" if number is not None else self.subject_url or self.id
        return f"{self.repo_owner}/{self.repo_name}{suffix}"


class PullRequestRef(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    url: str
    number: int
    owner: str
    repo: str
    title: str = ""
    body: str = ""
    node_id: str = ""
    state: str = "open"
    author: str = ""
    base_ref: str = ""
    head_ref: str = ""

    @property
    def is_open(self) -> bool:
        return self.state.lower() == "open"


class CommitOutcome(BaseModel):
    model_config = ConfigDict(extra="forbid")

    pr_url: str
    title: str = ""
    status: CommitStatus
    step: str | None = None
    reason: str = ""
    warnings: list[str] = Field(default_factory=list)


class CommitReport(BaseModel):
    model_config = ConfigDict(extra="forbid")

    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    dry_run: bool = False
    approved_fingerprints: list[str] = Field(default_factory=list)
    declined_fingerprints: list[str] = Field(default_factory=list)
    outcomes: list[CommitOutcome] = Field(default_factory=list)

    def by_status(self, status: CommitStatus) -> list[CommitOutcome]:
        return [outcome for outcome in self.outcomes if outcome.status == status]

    def outcome_for(self, pr_url: str) -> CommitOutcome | None:
        for outcome in self.outcomes:
            if outcome.pr_url == pr_url:
                return outcome
        return None
