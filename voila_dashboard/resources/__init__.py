"""
Voilà Dashboard - Resources

This module contains the resource classes attached to the data client.
"""

from voila_dashboard.resources.base import BaseResource
from voila_dashboard.resources.dashboard import DashboardResource
from voila_dashboard.resources.questions import FrequentQuestionsResource
from voila_dashboard.resources.auth import AuthResource

__all__ = [
    "BaseResource",
    "DashboardResource",
    "FrequentQuestionsResource",
    "AuthResource",
]
