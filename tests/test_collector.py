import threading
import time

import pytest

from prgate.collector import collect_review_index
from prgate.errors import CollectionError
from prgate.fingerprint import extract_fingerprints
from prgate.index import ReviewIndex
from prgate.models import Notification, PullRequestRef

BUMP = "@@ -1 +1 @@\n-requests==2.31.0\n+requests==2.32.3\n"
LOCKFILE = "@@ -40,2 +40,2 @@\n-version = 2.31.0\n+version = 2.32.3\n"
README = "@@ -1 +1 @@\n-old title\n+new title\n"


def _notification(number: int, *, repo: str = "api", reason: str = "review_requested") -> Notification:
    return Notification(
        id=f"n-{repo}-{number}-{reason}",
        reason=reason,
        subject_url=f"https://api.github.com/repos/acme/{repo}/pulls/{number}",
        repo_owner="acme",
        repo_name=repo,
    )


def _pr(number: int, *, repo: str = "api", author: str = "dependabot[bot]", state: str = "open") -> PullRequestRef:
    return PullRequestRef(
        url=f"https://github.com/acme/{repo}/pull/{number}",
        number=number,
        owner="acme",
        repo=repo,
        title=f"Bump requests in {repo}",
        node_id=f"PR_{repo}_{number}",
        state=state,
        author=author,
        base_ref="main",
        head_ref=f"dependabot/pip/requests-{number}",
    )


class FakeSource:
    def __init__(self, notifications, prs, diffs, *, delay: float = 0.0) -> None:
        self.notifications = notifications
        self.prs = prs
        self.diffs = diffs
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0
        self.pr_requests = []
        self._lock = threading.Lock()

    def list_pending_review_notifications(self):
        return list(self.notifications)

    def get_pull_request(self, owner, repo, number):
        with self._lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            self.pr_requests.append((owner, repo, number))
        try:
            if self.delay:
                time.sleep(self.delay)
            return self.prs.get((repo, number))
        finally:
            with self._lock:
                self.in_flight -= 1

    def get_diff(self, pr):
        diff = self.diffs[pr.url]
        if isinstance(diff, Exception):
            raise diff
        return diff

    def get_pull_request_comment(self, pr):
        return pr.body


def test_collect_builds_consistent_indices() -> None:
    pr1, pr2, pr3 = _pr(1), _pr(2, repo="web"), _pr(3, author="alice")
    source = FakeSource(
        notifications=[_notification(1), _notification(2, repo="web"), _notification(3)],
        prs={("api", 1): pr1, ("web", 2): pr2, ("api", 3): pr3},
        diffs={pr1.url: BUMP + LOCKFILE, pr2.url: BUMP, pr3.url: README},
    )

    index = collect_review_index(source, max_workers=2)

    bump = extract_fingerprints(BUMP)[0][0]
    lockfile = extract_fingerprints(LOCKFILE)[0][0]
    readme = extract_fingerprints(README)[0][0]
    assert index.users() == ["alice", "dependabot[bot]"]
    assert {pr.url for pr in index.fingerprint_prs[bump]} == {pr1.url, pr2.url}
    assert index.pr_fingerprints[pr1.url] == [bump, lockfile]
    assert index.pr_fingerprints[pr3.url] == [readme]
    assert set(index.user_fingerprints["dependabot[bot]"]) == {bump, lockfile}
    assert index.change_lines[bump] == ["-requests==2.31.0", "+requests==2.32.3"]

    for fingerprint, prs in index.fingerprint_prs.items():
        for pr in prs:
            assert fingerprint in index.pr_fingerprints[pr.url]
    for url, fingerprints in index.pr_fingerprints.items():
        for fingerprint in fingerprints:
            assert url in {pr.url for pr in index.fingerprint_prs[fingerprint]}


def test_collect_skips_other_reasons_closed_and_missing_prs() -> None:
    open_pr = _pr(1)
    closed_pr = _pr(2, state="closed")
    source = FakeSource(
        notifications=[
            _notification(1),
            _notification(2),
            _notification(3),
            _notification(4, reason="mention"),
        ],
        prs={("api", 1): open_pr, ("api", 2): closed_pr},
        diffs={open_pr.url: BUMP},
    )

    index = collect_review_index(source)

    assert list(index.pull_requests) == [open_pr.url]
    assert ("api", 4) not in source.pr_requests


def test_duplicate_notifications_do_not_double_count() -> None:
    pr = _pr(1)
    source = FakeSource(
        notifications=[_notification(1), _notification(1), _notification(1)],
        prs={("api", 1): pr},
        diffs={pr.url: BUMP + BUMP},
    )

    index = collect_review_index(source, max_workers=3)

    bump = extract_fingerprints(BUMP)[0][0]
    assert [p.url for p in index.fingerprint_prs[bump]] == [pr.url]
    assert index.pr_fingerprints[pr.url] == [bump]
    assert [p.url for p in index.user_fingerprints["dependabot[bot]"][bump]] == [pr.url]


def test_merging_same_pull_request_twice_is_idempotent() -> None:
    index = ReviewIndex()
    pr = _pr(7)
    fingerprints, change_lines = extract_fingerprints(BUMP + LOCKFILE)

    index.merge_pull_request(pr.author, pr, fingerprints, change_lines)
    snapshot = (
        {fp: [p.url for p in prs] for fp, prs in index.fingerprint_prs.items()},
        {url: list(fps) for url, fps in index.pr_fingerprints.items()},
        {user: {fp: [p.url for p in prs] for fp, prs in by_fp.items()} for user, by_fp in index.user_fingerprints.items()},
    )
    index.merge_pull_request(pr.author, pr, fingerprints, change_lines)

    assert snapshot == (
        {fp: [p.url for p in prs] for fp, prs in index.fingerprint_prs.items()},
        {url: list(fps) for url, fps in index.pr_fingerprints.items()},
        {user: {fp: [p.url for p in prs] for fp, prs in by_fp.items()} for user, by_fp in index.user_fingerprints.items()},
    )


def test_change_lines_first_writer_wins() -> None:
    index = ReviewIndex()
    index.merge_pull_request("bot", _pr(1), ["h1"], {"h1": ["+a"]})
    index.merge_pull_request("bot", _pr(2), ["h1"], {"h1": ["+b"]})

    assert index.change_lines["h1"] == ["+a"]


def test_listing_failure_aborts_collection() -> None:
    class BrokenSource(FakeSource):
        def list_pending_review_notifications(self):
            raise RuntimeError("HTTP 401")

    with pytest.raises(CollectionError) as excinfo:
        collect_review_index(BrokenSource([], {}, {}))

    assert excinfo.value.step == "list notifications"
    assert "HTTP 401" in str(excinfo.value)


def test_single_resolution_failure_fails_whole_batch() -> None:
    good, bad = _pr(1), _pr(2)
    source = FakeSource(
        notifications=[_notification(1), _notification(2)],
        prs={("api", 1): good, ("api", 2): bad},
        diffs={good.url: BUMP, bad.url: RuntimeError("connection reset")},
    )

    with pytest.raises(CollectionError) as excinfo:
        collect_review_index(source, max_workers=1)

    assert excinfo.value.step == "fetch diff"
    assert excinfo.value.subject == bad.url
    assert "connection reset" in str(excinfo.value)


def test_pull_request_fetch_failure_names_notification() -> None:
    class FailingSource(FakeSource):
        def get_pull_request(self, owner, repo, number):
            raise RuntimeError("HTTP 502")

    with pytest.raises(CollectionError) as excinfo:
        collect_review_index(FailingSource([_notification(9)], {}, {}))

    assert excinfo.value.step == "fetch pull request"
    assert excinfo.value.subject == "acme/api#9"


def test_in_flight_resolutions_are_bounded() -> None:
    prs = {("api", n): _pr(n) for n in range(1, 9)}
    source = FakeSource(
        notifications=[_notification(n) for n in range(1, 9)],
        prs=prs,
        diffs={pr.url: BUMP for pr in prs.values()},
        delay=0.02,
    )

    index = collect_review_index(source, max_workers=3)

    assert len(index.pull_requests) == 8
    assert 1 <= source.max_in_flight <= 3


def test_non_pull_request_subjects_are_not_resolved() -> None:
    pr = _pr(1)
    issue = _notification(2).model_copy(update={"subject_type": "Issue"})
    source = FakeSource(notifications=[_notification(1), issue], prs={("api", 1): pr}, diffs={pr.url: BUMP})

    index = collect_review_index(source)

    assert list(index.pull_requests) == [pr.url]
    assert source.pr_requests == [("acme", "api", 1)]


def test_undecodable_diff_bytes_do_not_abort_collection() -> None:
    pr = _pr(1)
    diff = b"@@ -1 +1 @@\n-caf\xe9\n+cafe\n".decode("utf-8", "surrogateescape")
    source = FakeSource(notifications=[_notification(1)], prs={("api", 1): pr}, diffs={pr.url: diff})

    index = collect_review_index(source)

    assert len(index.pr_fingerprints[pr.url]) == 1
