"""Voilà Dashboard CLI - call statistics, KPI charts and the chat tester from the terminal."""

__version__ = "1.0.0"
