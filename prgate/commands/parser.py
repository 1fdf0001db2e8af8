"""CLI parser construction."""

from __future__ import annotations

import argparse

from prgate.commands.common import add_common_config_flags, add_decision_flags, add_github_flags


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Hunk-level triage of pending pull request reviews")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING, ERROR)")
    parser.add_argument("--log-file", help="Write logs to this file instead of stderr")

    sub = parser.add_subparsers(dest="command", required=True)

    users = sub.add_parser("users", aliases=["only-users"], help="List users with pending PR reviews")
    add_common_config_flags(users)
    add_github_flags(users)

    show = sub.add_parser("show", help="Show pending changes per user")
    show.add_argument("-u", "--user", action="append", help="User(s) to show changes for (comma separated, repeatable)")
    add_common_config_flags(show)
    add_github_flags(show)

    lookup = sub.add_parser("lookup", help="Show pull requests containing the given fingerprints")
    lookup.add_argument("-x", "--fingerprint", action="append", required=True, help="Fingerprint(s) to look up (comma separated, repeatable)")
    add_common_config_flags(lookup)
    add_github_flags(lookup)

    manual = sub.add_parser("manual", help="Interactive manual approval for a user")
    manual.add_argument("-m", "--user", required=True, help="User(s) to run manual approval for (comma separated)")
    manual.add_argument("--report-json", help="Write the commit report as JSON to this path")
    add_common_config_flags(manual)
    add_github_flags(manual)
    add_decision_flags(manual)

    serve_ui = sub.add_parser("serve", aliases=["serve-ui"], help="Run a read-only web view over pending review requests")
    serve_ui.add_argument("--host", default="127.0.0.1", help="Bind host")
    serve_ui.add_argument("--port", type=int, default=8765, help="Bind port")
    add_common_config_flags(serve_ui)
    add_github_flags(serve_ui)

    return parser
