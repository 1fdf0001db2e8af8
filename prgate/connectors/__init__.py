"""Connector interfaces and implementations."""

from .github_gh import GithubGhSinkConnector, GithubGhSourceConnector

__all__ = ["GithubGhSourceConnector", "GithubGhSinkConnector"]
