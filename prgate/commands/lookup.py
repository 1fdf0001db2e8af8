"""Look up pull requests by fingerprint."""

from __future__ import annotations

import argparse

from prgate.commands.common import build_source, collect_index, load_config
from prgate.index import split_names
from prgate.reporting import render_fingerprint_lookup
from prgate.services.command_runtime import CommandRuntime


def run(args: argparse.Namespace, *, runtime: CommandRuntime) -> int:
    config = load_config(args)
    index = collect_index(config, build_source(config, runtime))
    runtime.echo(render_fingerprint_lookup(index, split_names(args.fingerprint)))
    return 0
