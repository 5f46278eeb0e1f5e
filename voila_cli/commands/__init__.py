"""CLI command modules."""

from .dashboard import dashboard
from .kpi import kpi
from .questions import questions
from .chat import chat
from .config import config

__all__ = [
    "dashboard",
    "kpi",
    "questions",
    "chat",
    "config",
]
