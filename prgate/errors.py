"""Exception types shared across collection, decisions and commit."""

from __future__ import annotations


class PrgateError(RuntimeError):
    """Base class for errors surfaced to the operator."""


class CollectionError(PrgateError):
    def __init__(self, message: str, *, step: str, subject: str | None = None) -> None:
        super().__init__(message)
        self.step = step
        self.subject = subject


class ApprovalAborted(PrgateError):
    """Raised when the operator quits the decision walk."""


class PullRequestActionError(PrgateError):
    def __init__(self, message: str, *, pr_url: str, step: str) -> None:
        super().__init__(message)
        self.pr_url = pr_url
        self.step = step
