"""Interactive manual approval command."""

from __future__ import annotations

import argparse
import logging

from prgate.commands.common import build_sink, build_source, collect_index, load_config
from prgate.commit import commit_approvals
from prgate.decisions import DecisionEngine
from prgate.errors import ApprovalAborted
from prgate.reporting import render_commit_report, write_commit_report
from prgate.services.command_runtime import CommandRuntime

logger = logging.getLogger(__name__)


def run(args: argparse.Namespace, *, runtime: CommandRuntime) -> int:
    config = load_config(args)
    source = build_source(config, runtime)
    index = collect_index(config, source)

    fingerprints = index.fingerprints_for_users(args.user)
    if not fingerprints:
        runtime.echo(f"No fingerprints found for user {args.user}")
        return 0

    engine = DecisionEngine(
        index,
        source=source,
        input_source=runtime.input_source_factory(),
        propagate=config.approval.propagate,
        echo=runtime.echo,
    )
    try:
        session = engine.run(fingerprints)
    except ApprovalAborted as exc:
        runtime.echo(str(exc))
        logger.info("Manual approval aborted; no pull requests were committed")
        return 0

    report = commit_approvals(
        index,
        session,
        build_sink(config, runtime),
        dry_run=config.approval.dry_run,
        update_branches=config.merge.update_branches,
        echo=runtime.echo,
    )
    runtime.echo(render_commit_report(report))
    if args.report_json:
        path = write_commit_report(report, args.report_json)
        logger.info("Wrote commit report to %s", path)
    return 0
