import pytest

from prgate.index import ReviewIndex
from prgate.models import PullRequestRef


def _pr(number: int) -> PullRequestRef:
    return PullRequestRef(
        url=f"https://github.com/acme/api/pull/{number}",
        number=number,
        owner="acme",
        repo="api",
        title=f"Bump dependency #{number}",
        author="alice",
    )


def _build_index() -> ReviewIndex:
    index = ReviewIndex()
    index.merge_pull_request("alice", _pr(1), ["h1", "h2"], {"h1": ["+a"], "h2": ["+b"]})
    index.merge_pull_request("alice", _pr(2), ["h2"], {"h2": ["+b"]})
    return index


def test_webapp_serves_users_and_fingerprints() -> None:
    pytest.importorskip("fastapi")
    from fastapi.testclient import TestClient

    from prgate.webapp import create_app

    loads: list[int] = []

    def _loader() -> ReviewIndex:
        loads.append(1)
        return _build_index()

    client = TestClient(create_app(_loader))

    users = client.get("/api/users")
    assert users.status_code == 200
    assert users.json() == {"users": [{"user": "alice", "fingerprints": 2}]}

    fingerprints = client.get("/api/users/Alice/fingerprints")
    assert fingerprints.status_code == 200
    assert [item["fingerprint"] for item in fingerprints.json()["fingerprints"]] == ["h1", "h2"]

    detail = client.get("/api/fingerprints/h1")
    assert detail.status_code == 200
    body = detail.json()
    assert body["change_lines"] == ["+a"]
    assert body["prs"] == [{"url": _pr(1).url, "title": "Bump dependency #1", "author": "alice"}]
    assert body["linked"] == {_pr(1).url: ["h2"]}

    assert client.get("/api/fingerprints/unknown").status_code == 404
    assert client.get("/api/users/bob/fingerprints").status_code == 404
    assert len(loads) == 1

    refreshed = client.post("/api/refresh")
    assert refreshed.json() == {"users": 1, "pull_requests": 2}
    assert len(loads) == 2


def test_webapp_commit_plan_lists_eligible_pull_requests() -> None:
    pytest.importorskip("fastapi")
    from fastapi.testclient import TestClient

    from prgate.webapp import create_app

    client = TestClient(create_app(_build_index))

    plan = client.post("/api/commit-plan", json={"approved": ["h2"]})
    assert plan.json() == {"eligible": [_pr(2).url]}

    plan = client.post("/api/commit-plan", json={"approved": ["h1", "h2"], "pr_skipped": [_pr(2).url]})
    assert plan.json() == {"eligible": [_pr(1).url]}

    assert client.post("/api/commit-plan", json={"approved": [], "oops": 1}).status_code == 422
