"""Fingerprint and pull request indices built during collection."""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping, Sequence

from prgate.models import PullRequestRef


def split_names(values: str | Iterable[str]) -> list[str]:
    raw = [values] if isinstance(values, str) else list(values)
    names: list[str] = []
    for item in raw:
        for token in item.split(","):
            name = token.strip()
            if name and name not in names:
                names.append(name)
    return names


class ReviewIndex:
    """Bipartite relation between fingerprints and pull requests.

    Merges are serialized by one lock and deduplicated by pull request URL, so
    merging the same pull request twice leaves every index unchanged. After
    collection the index is treated as read-only.
    """

    def __init__(self) -> None:
        self.user_fingerprints: dict[str, dict[str, list[PullRequestRef]]] = {}
        self.fingerprint_prs: dict[str, list[PullRequestRef]] = {}
        self.pr_fingerprints: dict[str, list[str]] = {}
        self.change_lines: dict[str, list[str]] = {}
        self.pull_requests: dict[str, PullRequestRef] = {}
        self._lock = threading.Lock()

    def merge_pull_request(
        self,
        user: str,
        pr: PullRequestRef,
        fingerprints: Sequence[str],
        change_lines: Mapping[str, Sequence[str]],
    ) -> None:
        with self._lock:
            self.pull_requests.setdefault(pr.url, pr)
            by_fingerprint = self.user_fingerprints.setdefault(user, {})
            for fingerprint in fingerprints:
                user_prs = by_fingerprint.setdefault(fingerprint, [])
                if not any(existing.url == pr.url for existing in user_prs):
                    user_prs.append(pr)

                global_prs = self.fingerprint_prs.setdefault(fingerprint, [])
                if not any(existing.url == pr.url for existing in global_prs):
                    global_prs.append(pr)

                pr_hashes = self.pr_fingerprints.setdefault(pr.url, [])
                if fingerprint not in pr_hashes:
                    pr_hashes.append(fingerprint)

            for fingerprint, lines in change_lines.items():
                if fingerprint not in self.change_lines:
                    self.change_lines[fingerprint] = list(lines)

    def users(self) -> list[str]:
        return sorted(self.user_fingerprints)

    def fingerprints_for_users(self, users: str | Iterable[str]) -> list[str]:
        """Sorted fingerprints of the given users; names match exactly, then case-insensitively."""
        selected: set[str] = set()
        for name in split_names(users):
            by_fingerprint = self.user_fingerprints.get(name)
            if by_fingerprint is None:
                for known, candidate in self.user_fingerprints.items():
                    if known.lower() == name.lower():
                        by_fingerprint = candidate
                        break
            if by_fingerprint:
                selected.update(by_fingerprint)
        return sorted(selected)

    def prs_for(self, fingerprint: str) -> list[PullRequestRef]:
        return list(self.fingerprint_prs.get(fingerprint, []))

    def fingerprints_of(self, pr_url: str) -> list[str]:
        return list(self.pr_fingerprints.get(pr_url, []))

    def linked_fingerprints(self, fingerprint: str) -> dict[str, list[str]]:
        """Other fingerprints sharing a pull request with ``fingerprint``, keyed by PR URL."""
        linked: dict[str, list[str]] = {}
        for pr in self.fingerprint_prs.get(fingerprint, []):
            others = [other for other in self.pr_fingerprints.get(pr.url, []) if other != fingerprint]
            if others:
                linked[pr.url] = others
        return linked
