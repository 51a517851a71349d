"""Scheduling and forecast engine for recurring municipal upkeep services."""

__version__ = "0.1.0"
