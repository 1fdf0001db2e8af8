"""CLI entrypoint for prgate."""

from __future__ import annotations

import logging

from prgate.commands import lookup, manual, serve, show, users
from prgate.commands.parser import build_parser
from prgate.connectors.github_gh import GithubGhSinkConnector, GithubGhSourceConnector
from prgate.decisions import ConsoleInput
from prgate.errors import PrgateError
from prgate.logging_utils import configure_logging
from prgate.services.command_runtime import CommandRuntime

logger = logging.getLogger(__name__)

ALIAS_TO_CANONICAL = {
    "only-users": "users",
    "serve-ui": "serve",
}

COMMANDS = {
    "users": users.run,
    "show": show.run,
    "lookup": lookup.run,
    "manual": manual.run,
    "serve": serve.run,
}


def default_runtime() -> CommandRuntime:
    return CommandRuntime(
        source_connector_cls=GithubGhSourceConnector,
        sink_connector_cls=GithubGhSinkConnector,
        input_source_factory=ConsoleInput,
    )


def normalize_command(name: str) -> str:
    return ALIAS_TO_CANONICAL.get(name, name)


def main(argv: list[str] | None = None, *, runtime: CommandRuntime | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level, args.log_file)

    handler = COMMANDS.get(normalize_command(args.command))
    if handler is None:
        parser.print_help()
        return 1
    try:
        return handler(args, runtime=runtime or default_runtime())
    except PrgateError as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
