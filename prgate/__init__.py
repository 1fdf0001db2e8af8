"""Hunk-level pull request review triage."""
