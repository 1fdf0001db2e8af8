"""Typed command runtime dependency container."""

from __future__ import annotations

from dataclasses import dataclass

from prgate.services.interfaces import Echo, InputSourceFactory, SinkConnectorFactory, SourceConnectorFactory


@dataclass(frozen=True)
class CommandRuntime:
    source_connector_cls: SourceConnectorFactory
    sink_connector_cls: SinkConnectorFactory
    input_source_factory: InputSourceFactory
    echo: Echo = print
