"""Interactive fingerprint decision state machine.

The engine walks fingerprints in sorted order and records operator decisions
in an ``ApprovalSession``. Decisions spread to other fingerprints through the
pull requests they share:

* approving may auto-approve sibling fingerprints (only with ``propagate``);
* declining always skips every pull request containing the fingerprint and
  declines all of their fingerprints;
* a fingerprint whose change lines were all first shown under other, already
  approved fingerprints is approved without a prompt.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from prgate.connectors.base import ReviewSource
from prgate.errors import ApprovalAborted
from prgate.index import ReviewIndex
from prgate.models import PullRequestRef

logger = logging.getLogger(__name__)

Echo = Callable[[str], None]

PROMPT_HELP = "Please enter y (approve), n (decline), s (show comment) or q (quit)"


class Action(str, Enum):
    APPROVE = "approve"
    DECLINE = "decline"
    SHOW_COMMENT = "show_comment"
    QUIT = "quit"


class FingerprintState(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"


_ACTION_ALIASES = {
    "y": Action.APPROVE,
    "a": Action.APPROVE,
    "approve": Action.APPROVE,
    "n": Action.DECLINE,
    "d": Action.DECLINE,
    "decline": Action.DECLINE,
    "s": Action.SHOW_COMMENT,
    "show": Action.SHOW_COMMENT,
    "q": Action.QUIT,
    "quit": Action.QUIT,
}


def parse_action(text: str) -> Action | None:
    return _ACTION_ALIASES.get(text.strip().lower())


class InputSource(Protocol):
    def read_line(self, prompt: str) -> str | None: ...


class ConsoleInput:
    def read_line(self, prompt: str) -> str | None:
        try:
            return input(prompt)
        except EOFError:
            return None


class ScriptedInput:
    """Replays canned answers; returns None once exhausted."""

    def __init__(self, answers: Iterable[str]) -> None:
        self._answers = list(answers)
        self.prompts: list[str] = []

    def read_line(self, prompt: str) -> str | None:
        self.prompts.append(prompt)
        if not self._answers:
            return None
        return self._answers.pop(0)


@dataclass
class ApprovalSession:
    approved: set[str] = field(default_factory=set)
    declined: set[str] = field(default_factory=set)
    pr_skipped: set[str] = field(default_factory=set)
    first_seen: dict[str, str] = field(default_factory=dict)

    def state(self, fingerprint: str) -> FingerprintState:
        if fingerprint in self.approved:
            return FingerprintState.APPROVED
        if fingerprint in self.declined:
            return FingerprintState.DECLINED
        return FingerprintState.PENDING

    def is_decided(self, fingerprint: str) -> bool:
        return fingerprint in self.approved or fingerprint in self.declined

    def approve(self, fingerprint: str) -> None:
        self.declined.discard(fingerprint)
        self.approved.add(fingerprint)

    def decline(self, fingerprint: str) -> None:
        self.approved.discard(fingerprint)
        self.declined.add(fingerprint)


def duplicate_origins(fingerprint: str, change_lines: Sequence[str], session: ApprovalSession) -> list[str] | None:
    """Approved fingerprints that first showed every line of ``fingerprint``, or None."""
    if not change_lines:
        return None
    origins: set[str] = set()
    for line in change_lines:
        first = session.first_seen.get(line)
        if first is None or first == fingerprint or first not in session.approved:
            return None
        origins.add(first)
    return sorted(origins)


def unique_pr_positions(fingerprints: Iterable[str], index: ReviewIndex) -> dict[str, int]:
    urls = sorted({pr.url for fingerprint in fingerprints for pr in index.fingerprint_prs.get(fingerprint, [])})
    return {url: position for position, url in enumerate(urls, start=1)}


class DecisionEngine:
    def __init__(
        self,
        index: ReviewIndex,
        *,
        source: ReviewSource,
        input_source: InputSource,
        propagate: bool = False,
        echo: Echo = print,
        session: ApprovalSession | None = None,
    ) -> None:
        self.index = index
        self.source = source
        self.input_source = input_source
        self.propagate = propagate
        self.echo = echo
        self.session = session or ApprovalSession()

    def run(self, fingerprints: Sequence[str]) -> ApprovalSession:
        ordered = sorted(set(fingerprints))
        total = len(ordered)
        pr_positions = unique_pr_positions(ordered, self.index)
        total_prs = len(pr_positions)

        for position, fingerprint in enumerate(ordered, start=1):
            if self.session.is_decided(fingerprint):
                continue

            prs = self.index.prs_for(fingerprint)
            if any(pr.url in self.session.pr_skipped for pr in prs):
                self.echo(f"Skipping fingerprint {fingerprint} because one of its PRs was previously skipped")
                continue

            change_lines = self.index.change_lines.get(fingerprint, [])
            origins = duplicate_origins(fingerprint, change_lines, self.session)
            if origins:
                self.session.approve(fingerprint)
                self.echo(f"All changes for fingerprint {fingerprint} are duplicates of {origins} and already approved, auto-approving.")
                continue

            self.echo(f"Fingerprint {fingerprint}")
            self._show_changes(fingerprint, change_lines)
            self._show_pull_requests(prs)
            pr_position = pr_positions.get(prs[0].url, 1) if prs else 1
            prompt = f"pr {pr_position}/{total_prs} fingerprint {position}/{total} approve this fingerprint? (y/n/s/q) "
            self._prompt(fingerprint, prs, prompt)

        return self.session

    def run_for_users(self, users: str | Iterable[str]) -> ApprovalSession:
        return self.run(self.index.fingerprints_for_users(users))

    def _show_changes(self, fingerprint: str, change_lines: Sequence[str]) -> None:
        if not change_lines:
            self.echo("No changes recorded for this fingerprint.")
            return
        self.echo("Changes:")
        for line in change_lines:
            first = self.session.first_seen.get(line)
            if first is not None:
                self.echo(f"  [duplicate of {first}] {line}")
            else:
                self.echo(f"  {line}")
                self.session.first_seen[line] = fingerprint

    def _show_pull_requests(self, prs: Sequence[PullRequestRef]) -> None:
        if not prs:
            self.echo("No PRs associated with this fingerprint.")
            return
        self.echo("Associated PRs:")
        for position, pr in enumerate(prs, start=1):
            self.echo(f"  [{position}/{len(prs)}] {pr.title}")
            self.echo(f"    {pr.url}")

    def _prompt(self, fingerprint: str, prs: Sequence[PullRequestRef], prompt: str) -> None:
        while True:
            answer = self.input_source.read_line(prompt)
            if answer is None:
                raise ApprovalAborted("Input closed before all fingerprints were decided")
            action = parse_action(answer)
            if action is None:
                self.echo(PROMPT_HELP)
                continue
            if action == Action.QUIT:
                raise ApprovalAborted("Quitting manual approval early.")
            if action == Action.SHOW_COMMENT:
                self._show_comments(fingerprint, prs)
                continue
            if action == Action.APPROVE:
                self.approve(fingerprint)
            else:
                self.decline(fingerprint)
            return

    def approve(self, fingerprint: str) -> None:
        self.session.approve(fingerprint)
        logger.debug("Approved fingerprint %s", fingerprint)
        if self.propagate:
            self._approve_linked(fingerprint)

    def decline(self, fingerprint: str) -> None:
        self.session.decline(fingerprint)
        logger.debug("Declined fingerprint %s", fingerprint)
        self._decline_linked(fingerprint)

    def _approve_linked(self, fingerprint: str) -> None:
        for pr in self.index.prs_for(fingerprint):
            for linked in self.index.fingerprints_of(pr.url):
                if linked == fingerprint or self.session.is_decided(linked):
                    continue
                self.session.approve(linked)
                self.echo(f"Auto-approved linked fingerprint {linked} (from PR {pr.url})")

    def _decline_linked(self, fingerprint: str) -> None:
        for pr in self.index.prs_for(fingerprint):
            if pr.url not in self.session.pr_skipped:
                self.session.pr_skipped.add(pr.url)
                self.echo(f"Skipping PR {pr.url} because fingerprint {fingerprint} was declined")
            for linked in self.index.fingerprints_of(pr.url):
                if linked == fingerprint or linked in self.session.declined:
                    continue
                self.session.decline(linked)
                self.echo(f"Marked linked fingerprint {linked} as declined due to PR {pr.url}")

    def _show_comments(self, fingerprint: str, prs: Sequence[PullRequestRef]) -> None:
        sections: list[str] = []
        for pr in prs:
            try:
                comment = self.source.get_pull_request_comment(pr)
            except Exception as exc:
                self.echo(f"Error fetching comment for PR {pr.url} (fingerprint {fingerprint}): {exc}")
                continue
            if comment:
                rule = "-" * len(f"--- From PR {pr.url} ---")
                sections.append("\n".join(["", rule, f"--- From PR {pr.url} ---", rule, "", comment]))

        if sections:
            self.echo("Review comment:")
            self.echo("\n".join(sections))
        else:
            self.echo("No review comment found for this fingerprint.")
