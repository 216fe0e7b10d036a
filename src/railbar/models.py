"""
Domain models for RailBar.

Projects, services, environments and deployments as returned by one fetch
cycle. Instances are immutable; each successful cycle produces a new tree.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class DeploymentStatus(str, Enum):
    """Deployment status as reported by Railway."""

    BUILDING = "BUILDING"
    DEPLOYING = "DEPLOYING"
    INITIALIZING = "INITIALIZING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    CRASHED = "CRASHED"
    REMOVED = "REMOVED"
    SLEEPING = "SLEEPING"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_api(cls, value: str | None) -> "DeploymentStatus":
        """Decode a server status string, falling back to UNKNOWN."""
        if value is None:
            return cls.UNKNOWN
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_active(self) -> bool:
        return self in _ACTIVE_STATUSES

    @property
    def is_error(self) -> bool:
        return self in _ERROR_STATUSES


_ACTIVE_STATUSES = frozenset(
    {
        DeploymentStatus.BUILDING,
        DeploymentStatus.DEPLOYING,
        DeploymentStatus.INITIALIZING,
    }
)
_ERROR_STATUSES = frozenset({DeploymentStatus.FAILED, DeploymentStatus.CRASHED})


@dataclass(frozen=True)
class Deployment:
    """Latest deployment snapshot for a service."""

    id: str
    status: DeploymentStatus
    created_at: datetime


@dataclass(frozen=True)
class Environment:
    """Project environment."""

    id: str
    name: str

    @property
    def is_production(self) -> bool:
        return self.name.lower() == "production"


@dataclass(frozen=True)
class Service:
    """Service within a project."""

    id: str
    name: str
    icon: str | None = None
    latest_deployment: Deployment | None = None

    @property
    def status(self) -> DeploymentStatus:
        if self.latest_deployment is None:
            return DeploymentStatus.UNKNOWN
        return self.latest_deployment.status


@dataclass(frozen=True)
class Project:
    """Railway project with its services and environments."""

    id: str
    name: str
    services: list[Service] = field(default_factory=list)
    environments: list[Environment] = field(default_factory=list)
