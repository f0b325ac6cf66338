"""Scenario runner, failure reporting and CLI entry points."""
