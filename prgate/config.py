"""Configuration models and loading for prgate."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_CONFIG_PATH = Path("~/.config/prgate/config.yaml")


class GithubConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    gh_bin: str = "gh"
    rate_limit_retries: int = 2
    secondary_backoff_seconds: float = 5.0
    rate_limit_max_sleep_seconds: float = 90.0


class CollectConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    max_workers: int = Field(default=10, ge=1)
    lookback_days: int = Field(default=3, ge=1)
    per_page: int = Field(default=50, ge=1, le=100)
    review_reason: str = "review_requested"
    progress_every: int = Field(default=25, ge=1)


class ApprovalConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    propagate: bool = False
    dry_run: bool = False


class MergeConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    update_branches: bool = True
    auto_merge_method: str = "SQUASH"


class PrgateConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    github: GithubConfig = Field(default_factory=GithubConfig)
    collect: CollectConfig = Field(default_factory=CollectConfig)
    approval: ApprovalConfig = Field(default_factory=ApprovalConfig)
    merge: MergeConfig = Field(default_factory=MergeConfig)


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    data = yaml.safe_load(path.read_text())
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML at {path} must decode to a mapping")
    return data


def load_effective_config(
    config_path: str | Path | None = None,
    user_config_path: str | Path | None = DEFAULT_CONFIG_PATH,
    runtime_override: dict[str, Any] | None = None,
) -> PrgateConfig:
    """Load config with precedence runtime > explicit config file > user config > defaults."""
    merged: dict[str, Any] = {}
    if user_config_path is not None:
        merged = deep_merge(merged, _load_yaml(Path(user_config_path).expanduser()))
    if config_path is not None:
        path = Path(config_path).expanduser()
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        merged = deep_merge(merged, _load_yaml(path))
    if runtime_override:
        merged = deep_merge(merged, runtime_override)

    return PrgateConfig.model_validate(merged)
