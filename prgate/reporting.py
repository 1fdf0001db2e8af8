"""Plain-text and JSON renderings of collected indices and commit reports."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from prgate.index import ReviewIndex, split_names
from prgate.models import CommitReport, CommitStatus

_STATUS_LABELS = {
    CommitStatus.APPROVED: "approved",
    CommitStatus.WOULD_APPROVE: "would approve",
    CommitStatus.FAILED: "failed",
    CommitStatus.SKIPPED: "not attempted (declined)",
    CommitStatus.UNDECIDED: "not attempted (undecided)",
}


def render_user_list(index: ReviewIndex) -> str:
    return "\n".join(index.users())


def _render_changes(lines: list[str], index: ReviewIndex, fingerprint: str, indent: str) -> None:
    changes = index.change_lines.get(fingerprint)
    if not changes:
        lines.append(f"{indent}No changes found for this fingerprint.")
        return
    lines.append(f"{indent}Changes:")
    lines.extend(f"{indent}  {change}" for change in changes)


def render_user_changes(index: ReviewIndex, users: str | Iterable[str] | None = None) -> str:
    """Every fingerprint per user, with the sibling fingerprints of the PRs carrying it."""
    wanted = {name.lower() for name in split_names(users or [])}
    lines: list[str] = []
    for user in index.users():
        if wanted and user.lower() not in wanted:
            continue
        lines.append(f"User: {user}")
        for fingerprint in sorted(index.user_fingerprints[user]):
            lines.append(f"  Fingerprint: {fingerprint}")
            _render_changes(lines, index, fingerprint, "    ")
            for pr in index.user_fingerprints[user][fingerprint]:
                linked = [other for other in index.fingerprints_of(pr.url) if other != fingerprint]
                if not linked:
                    continue
                lines.append(f"    Additional fingerprints linked in PR {pr.url}:")
                for other in linked:
                    lines.append(f"      {other}")
                    _render_changes(lines, index, other, "        ")
    return "\n".join(lines)


def render_fingerprint_lookup(index: ReviewIndex, fingerprints: Iterable[str]) -> str:
    lines: list[str] = []
    for fingerprint in fingerprints:
        prs = index.prs_for(fingerprint)
        if not prs:
            lines.append(f"No PRs found for fingerprint: {fingerprint}")
            continue
        for pr in prs:
            lines.append(f"Found PR for fingerprint {fingerprint}: {pr.url}")
            linked = [other for other in index.fingerprints_of(pr.url) if other != fingerprint]
            if not linked:
                continue
            lines.append("  There are also other fingerprints linked to this PR:")
            for other in linked:
                lines.append(f"    {other}")
                lines.append(f"\t  Changes for fingerprint {other}:")
                lines.extend(f"\t    {change}" for change in index.change_lines.get(other, []))
    return "\n".join(lines)


def render_commit_report(report: CommitReport, *, include_undecided: bool = False) -> str:
    header = "Commit report (dry-run)" if report.dry_run else "Commit report"
    lines = [
        header,
        f"- Approved fingerprints: {len(report.approved_fingerprints)}",
        f"- Declined fingerprints: {len(report.declined_fingerprints)}",
    ]
    for status in CommitStatus:
        count = len(report.by_status(status))
        if count:
            lines.append(f"- {_STATUS_LABELS[status]}: {count}")
    lines.append("")
    for outcome in report.outcomes:
        if outcome.status == CommitStatus.UNDECIDED and not include_undecided:
            continue
        line = f"{outcome.pr_url}: {_STATUS_LABELS[outcome.status]}"
        if outcome.step:
            line += f" at {outcome.step}"
        if outcome.reason and outcome.status == CommitStatus.FAILED:
            line += f" ({outcome.reason})"
        lines.append(line)
        lines.extend(f"  warning: {warning}" for warning in outcome.warnings)
    return "\n".join(lines)


def write_commit_report(report: CommitReport, path: str | Path) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(report.model_dump_json(indent=2))
    return out
