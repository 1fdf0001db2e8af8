"""Serve UI command."""

from __future__ import annotations

import argparse
import logging

from prgate.commands.common import build_source, collect_index, load_config
from prgate.services.command_runtime import CommandRuntime

logger = logging.getLogger(__name__)


def run(args: argparse.Namespace, *, runtime: CommandRuntime) -> int:
    config = load_config(args)

    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover - dependency/runtime
        raise RuntimeError("Missing optional UI dependencies. Install with: pip install 'prgate[ui]'") from exc

    from prgate.webapp import create_app

    source = build_source(config, runtime)
    app = create_app(lambda: collect_index(config, source))
    logger.info("Starting UI on http://%s:%s", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())
    return 0
