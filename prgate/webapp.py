"""Read-only web view over collected review requests."""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from prgate.commit import eligible_pull_requests
from prgate.decisions import ApprovalSession
from prgate.index import ReviewIndex


class CommitPlanRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    approved: list[str] = Field(default_factory=list)
    declined: list[str] = Field(default_factory=list)
    pr_skipped: list[str] = Field(default_factory=list)


def _fingerprint_payload(index: ReviewIndex, fingerprint: str) -> dict[str, Any]:
    return {
        "fingerprint": fingerprint,
        "change_lines": index.change_lines.get(fingerprint, []),
        "prs": [{"url": pr.url, "title": pr.title, "author": pr.author} for pr in index.prs_for(fingerprint)],
        "linked": index.linked_fingerprints(fingerprint),
    }


def create_app(index_loader: Callable[[], ReviewIndex]) -> FastAPI:
    app = FastAPI(title="prgate", version="0.1.0")
    lock = threading.Lock()
    cache: dict[str, ReviewIndex] = {}

    def _index() -> ReviewIndex:
        with lock:
            if "index" not in cache:
                cache["index"] = index_loader()
            return cache["index"]

    @app.post("/api/refresh", response_class=JSONResponse)
    def api_refresh() -> JSONResponse:
        with lock:
            cache["index"] = index_loader()
            index = cache["index"]
        return JSONResponse({"users": len(index.user_fingerprints), "pull_requests": len(index.pull_requests)})

    @app.get("/api/users", response_class=JSONResponse)
    def api_users() -> JSONResponse:
        index = _index()
        return JSONResponse(
            {
                "users": [
                    {"user": user, "fingerprints": len(index.user_fingerprints[user])}
                    for user in index.users()
                ]
            }
        )

    @app.get("/api/users/{user}/fingerprints", response_class=JSONResponse)
    def api_user_fingerprints(user: str) -> JSONResponse:
        index = _index()
        fingerprints = index.fingerprints_for_users(user)
        if not fingerprints:
            raise HTTPException(status_code=404, detail=f"No fingerprints found for user {user}")
        return JSONResponse({"user": user, "fingerprints": [_fingerprint_payload(index, fp) for fp in fingerprints]})

    @app.get("/api/fingerprints/{fingerprint}", response_class=JSONResponse)
    def api_fingerprint(fingerprint: str) -> JSONResponse:
        index = _index()
        if fingerprint not in index.fingerprint_prs:
            raise HTTPException(status_code=404, detail=f"Unknown fingerprint {fingerprint}")
        return JSONResponse(_fingerprint_payload(index, fingerprint))

    @app.post("/api/commit-plan", response_class=JSONResponse)
    def api_commit_plan(request: CommitPlanRequest) -> JSONResponse:
        index = _index()
        session = ApprovalSession(pr_skipped=set(request.pr_skipped))
        for fingerprint in request.approved:
            session.approve(fingerprint)
        for fingerprint in request.declined:
            session.decline(fingerprint)
        eligible = eligible_pull_requests(index, session)
        return JSONResponse({"eligible": [pr.url for pr in eligible]})

    return app
