"""
RailBar

Polls the Railway GraphQL API and condenses deployment state into a single
status summary.
"""

__version__ = "0.1.0"

from .config import Settings
from .exceptions import RailBarError
from .polling import PollingController, RateLimitBudget
from .railway_client import RailwayClient

__all__ = [
    "Settings",
    "RailwayClient",
    "RailBarError",
    "PollingController",
    "RateLimitBudget",
]
