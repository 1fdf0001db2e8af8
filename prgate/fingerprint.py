"""Per-hunk content fingerprints for unified diffs."""

from __future__ import annotations

import hashlib
from collections.abc import Sequence


def fingerprint_lines(lines: Sequence[str]) -> str:
    material = "\n".join(lines)
    return hashlib.sha256(material.encode("utf-8", "surrogateescape")).hexdigest()


def _is_change_line(line: str) -> bool:
    if line.startswith("+++") or line.startswith("---"):
        return False
    return line.startswith("+") or line.startswith("-")


def extract_fingerprints(diff_text: str) -> tuple[list[str], dict[str, list[str]]]:
    """Split a unified diff into hunks and fingerprint each hunk's change lines.

    Returns the fingerprints in diff order (a repeated hunk appears twice) and
    a mapping from fingerprint to the ``+``/``-`` lines it was computed from.
    Lines before the first ``@@`` header and hunks without additions or
    removals never produce a fingerprint.
    """
    fingerprints: list[str] = []
    change_lines: dict[str, list[str]] = {}
    hunk: list[str] = []
    in_hunk = False

    def close_hunk() -> None:
        nonlocal hunk
        if not hunk:
            return
        fingerprint = fingerprint_lines(hunk)
        fingerprints.append(fingerprint)
        change_lines.setdefault(fingerprint, list(hunk))
        hunk = []

    for line in diff_text.split("\n"):
        if line.startswith("@@"):
            close_hunk()
            in_hunk = True
            continue
        if in_hunk and _is_change_line(line):
            hunk.append(line)

    close_hunk()
    return fingerprints, change_lines
