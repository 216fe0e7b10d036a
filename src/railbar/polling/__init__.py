"""
Polling system for RailBar.

This package contains the rate limit budget, deployment query batching,
the fetch cycle and the polling controller.
"""

from .batcher import DeploymentRequest, QueryBatcher
from .fetcher import DeploymentFetcher
from .orchestrator import PollingController
from .rate_limiter import RateLimitBudget

__all__ = [
    "DeploymentFetcher",
    "DeploymentRequest",
    "PollingController",
    "QueryBatcher",
    "RateLimitBudget",
]
