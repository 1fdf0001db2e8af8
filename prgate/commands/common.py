"""Shared helpers for CLI command modules."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any

import yaml

from prgate.collector import collect_review_index
from prgate.config import PrgateConfig, deep_merge, load_effective_config
from prgate.connectors.base import ReviewSink, ReviewSource
from prgate.index import ReviewIndex
from prgate.services.command_runtime import CommandRuntime

logger = logging.getLogger(__name__)


def load_yaml_dict(path: str | None) -> dict | None:
    if not path:
        return None
    data = yaml.safe_load(Path(path).read_text())
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ValueError(f"YAML at {path} must decode to a mapping")
    return data


def _flag_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if getattr(args, "gh_bin", None):
        overrides.setdefault("github", {})["gh_bin"] = args.gh_bin
    if getattr(args, "max_workers", None):
        overrides.setdefault("collect", {})["max_workers"] = args.max_workers
    if getattr(args, "lookback_days", None):
        overrides.setdefault("collect", {})["lookback_days"] = args.lookback_days
    if getattr(args, "propagate", None) is not None:
        overrides.setdefault("approval", {})["propagate"] = args.propagate
    if getattr(args, "dry_run", None) is not None:
        overrides.setdefault("approval", {})["dry_run"] = args.dry_run
    return overrides


def load_config(args: argparse.Namespace) -> PrgateConfig:
    runtime_override = load_yaml_dict(getattr(args, "runtime_override", None)) or {}
    flags = _flag_overrides(args)
    if flags:
        runtime_override = deep_merge(runtime_override, flags)
    return load_effective_config(
        config_path=getattr(args, "config", None),
        runtime_override=runtime_override or None,
    )


def build_source(config: PrgateConfig, runtime: CommandRuntime) -> ReviewSource:
    return runtime.source_connector_cls(
        config.github.gh_bin,
        lookback_days=config.collect.lookback_days,
        per_page=config.collect.per_page,
        rate_limit_retries=config.github.rate_limit_retries,
        secondary_backoff_base_seconds=config.github.secondary_backoff_seconds,
        rate_limit_max_sleep_seconds=config.github.rate_limit_max_sleep_seconds,
    )


def build_sink(config: PrgateConfig, runtime: CommandRuntime) -> ReviewSink:
    return runtime.sink_connector_cls(
        config.github.gh_bin,
        auto_merge_method=config.merge.auto_merge_method,
        rate_limit_retries=config.github.rate_limit_retries,
        secondary_backoff_base_seconds=config.github.secondary_backoff_seconds,
        rate_limit_max_sleep_seconds=config.github.rate_limit_max_sleep_seconds,
    )


def collect_index(config: PrgateConfig, source: ReviewSource) -> ReviewIndex:
    return collect_review_index(
        source,
        max_workers=config.collect.max_workers,
        review_reason=config.collect.review_reason,
        progress_every=config.collect.progress_every,
    )


def add_common_config_flags(cmd: argparse.ArgumentParser) -> None:
    cmd.add_argument("--config", help="Optional config YAML (overrides ~/.config/prgate/config.yaml)")
    cmd.add_argument("--runtime-override", help="Optional runtime override YAML")


def add_github_flags(cmd: argparse.ArgumentParser) -> None:
    cmd.add_argument("--gh-bin", help="Path/name of gh binary")
    cmd.add_argument("--max-workers", type=int, help="Parallel workers used to resolve review requests")
    cmd.add_argument("--lookback-days", type=int, help="Only consider notifications updated in the last N days")


def add_decision_flags(cmd: argparse.ArgumentParser) -> None:
    cmd.add_argument(
        "-p",
        "--propagate",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="When approving a fingerprint, automatically approve linked fingerprints in the same PR",
    )
    cmd.add_argument(
        "-d",
        "--dry-run",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Do not submit approvals, only print what would be approved",
    )
