"""Cleanup of generated boilerplate in pull request descriptions."""

from __future__ import annotations

import re

_BLANK_RUN_RE = re.compile(r"\n{3,}")

_COMMAND_BLOCK_MARKERS = (
    "dependabot commands and options",
    "you can trigger dependabot actions by commenting on this pr",
)
_COMMAND_LINE_PREFIXES = ("- `@dependabot", "`@dependabot")
_COMMAND_KEYWORDS = ("@dependabot", "rebase", "recreate", "merge")
_LOOKAHEAD_LINES = 8


def remove_html_tags(text: str) -> str:
    kept: list[str] = []
    in_tag = False
    for char in text:
        if char == "<":
            in_tag = True
            continue
        if char == ">":
            in_tag = False
            continue
        if not in_tag:
            kept.append(char)
    return "".join(kept)


def _strip_trailing_blank(lines: list[str]) -> list[str]:
    while lines and not lines[-1].strip():
        lines.pop()
    return lines


def _starts_command_block(lines: list[str], index: int) -> bool:
    stripped = lines[index].strip()
    lower = stripped.lower()
    if any(marker in lower for marker in _COMMAND_BLOCK_MARKERS):
        return True
    if lower.startswith(_COMMAND_LINE_PREFIXES) or stripped.startswith("@dependabot"):
        return True
    if "dependabot" in lower:
        window = " \n ".join(lines[index : index + _LOOKAHEAD_LINES]).lower()
        return any(keyword in window for keyword in _COMMAND_KEYWORDS)
    return False


def remove_dependabot_trailing_command(text: str) -> str:
    """Drop the Dependabot command/options block and everything after it."""
    if not text.strip():
        return text

    lines = text.split("\n")
    kept: list[str] = []
    for index, line in enumerate(lines):
        if _starts_command_block(lines, index):
            return "\n".join(_strip_trailing_blank(kept))
        kept.append(line)
    return "\n".join(kept).rstrip("\n\r \t")


def collapse_blank_lines(text: str) -> str:
    return _BLANK_RUN_RE.sub("\n\n", text)


def clean_dependabot_message(text: str) -> str:
    cleaned = remove_html_tags(text)
    cleaned = remove_dependabot_trailing_command(cleaned)
    return collapse_blank_lines(cleaned)
