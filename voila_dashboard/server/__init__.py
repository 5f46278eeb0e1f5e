"""Voilà Dashboard API server."""

from voila_dashboard.server.app import create_app, main

__all__ = ["create_app", "main"]
