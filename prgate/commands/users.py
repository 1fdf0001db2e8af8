"""List users with pending review work."""

from __future__ import annotations

import argparse

from prgate.commands.common import build_source, collect_index, load_config
from prgate.reporting import render_user_list
from prgate.services.command_runtime import CommandRuntime


def run(args: argparse.Namespace, *, runtime: CommandRuntime) -> int:
    config = load_config(args)
    index = collect_index(config, build_source(config, runtime))
    if not index.user_fingerprints:
        runtime.echo("No pending review requests found.")
        return 0
    runtime.echo(render_user_list(index))
    return 0
