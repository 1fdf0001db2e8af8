"""Service interfaces used by command/runtime orchestration."""

from __future__ import annotations

from typing import Protocol

from prgate.connectors.base import ReviewSink, ReviewSource
from prgate.decisions import InputSource


class SourceConnectorFactory(Protocol):
    def __call__(
        self,
        gh_bin: str = "gh",
        *,
        lookback_days: int = 3,
        per_page: int = 50,
        rate_limit_retries: int = 2,
        secondary_backoff_base_seconds: float = 5.0,
        rate_limit_max_sleep_seconds: float = 90.0,
    ) -> ReviewSource: ...


class SinkConnectorFactory(Protocol):
    def __call__(
        self,
        gh_bin: str = "gh",
        *,
        auto_merge_method: str = "SQUASH",
        rate_limit_retries: int = 2,
        secondary_backoff_base_seconds: float = 5.0,
        rate_limit_max_sleep_seconds: float = 90.0,
    ) -> ReviewSink: ...


class InputSourceFactory(Protocol):
    def __call__(self) -> InputSource: ...


class Echo(Protocol):
    def __call__(self, message: str) -> None: ...
