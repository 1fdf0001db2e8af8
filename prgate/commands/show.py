"""Print pending changes per user."""

from __future__ import annotations

import argparse

from prgate.commands.common import build_source, collect_index, load_config
from prgate.reporting import render_user_changes
from prgate.services.command_runtime import CommandRuntime


def run(args: argparse.Namespace, *, runtime: CommandRuntime) -> int:
    config = load_config(args)
    index = collect_index(config, build_source(config, runtime))
    rendered = render_user_changes(index, args.user or None)
    runtime.echo(rendered or "No pending changes for the selected users.")
    return 0
