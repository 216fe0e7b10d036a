"""
Status aggregation for the RailBar polling system.

Pure functions turning the current project tree into the condensed summary
consumed by the display layer: counts, per-project badges, the active
services ticker and the overall health indicator.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from ..models import DeploymentStatus, Project, Service


class BadgeTier(str, Enum):
    """Worst-status tier shown next to a project."""

    CRASHED = "crashed"
    BUILDING = "building"
    SUCCESS = "success"
    UNKNOWN = "unknown"


class OverallHealth(str, Enum):
    UNCONFIGURED = "unconfigured"
    LOADING = "loading"
    ERROR = "error"
    CRASHED = "crashed"
    BUILDING = "building"
    OK = "ok"


class WarningKind(str, Enum):
    EXHAUSTED = "exhausted"
    LOW = "low"


@dataclass(frozen=True)
class RateLimitWarning:
    """Budget warning derived after a fetch cycle."""

    kind: WarningKind
    remaining: int
    limit: int | None
    message: str


@dataclass(frozen=True)
class ActiveService:
    project_name: str
    service_name: str
    status: DeploymentStatus


@dataclass(frozen=True)
class StatusCounts:
    running: int = 0
    errored: int = 0
    active: int = 0
    sleeping: int = 0


@dataclass(frozen=True)
class MonitorSnapshot:
    """Read-only view of the monitor state, replaced wholesale on change."""

    projects: tuple[Project, ...] = ()
    is_loading: bool = False
    error: str | None = None
    rate_limit_warning: RateLimitWarning | None = None
    ticker_index: int = 0
    last_updated: datetime | None = None


@dataclass(frozen=True)
class StatusSummary:
    health: OverallHealth
    counts: StatusCounts
    badges: dict[str, BadgeTier] = field(default_factory=dict)
    active_services: list[ActiveService] = field(default_factory=list)
    ticker_service: ActiveService | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "health": self.health.value,
            "counts": {
                "running": self.counts.running,
                "errored": self.counts.errored,
                "active": self.counts.active,
                "sleeping": self.counts.sleeping,
            },
            "badges": {key: tier.value for key, tier in self.badges.items()},
            "active_services": [_active_to_dict(s) for s in self.active_services],
            "ticker_service": (
                _active_to_dict(self.ticker_service) if self.ticker_service else None
            ),
        }


def _active_to_dict(service: ActiveService) -> dict[str, str]:
    return {
        "project": service.project_name,
        "service": service.service_name,
        "status": service.status.value,
    }


def effective_status(service: Service) -> DeploymentStatus:
    """Latest deployment status, or UNKNOWN when nothing was resolved."""
    return service.status


def _resolved_statuses(project: Project) -> list[DeploymentStatus]:
    return [
        service.latest_deployment.status
        for service in project.services
        if service.latest_deployment is not None
    ]


def count_statuses(projects: Sequence[Project]) -> StatusCounts:
    statuses = [
        effective_status(service)
        for project in projects
        for service in project.services
    ]
    return StatusCounts(
        running=sum(1 for s in statuses if s == DeploymentStatus.SUCCESS),
        errored=sum(1 for s in statuses if s.is_error),
        active=sum(1 for s in statuses if s.is_active),
        sleeping=sum(1 for s in statuses if s == DeploymentStatus.SLEEPING),
    )


def project_badge(project: Project) -> BadgeTier:
    """
    Worst status of a project's services.

    Precedence: any failed/crashed, then any building/deploying/initializing,
    then all successful. Services without a resolved deployment are ignored.
    """
    statuses = _resolved_statuses(project)
    if any(s.is_error for s in statuses):
        return BadgeTier.CRASHED
    if any(s.is_active for s in statuses):
        return BadgeTier.BUILDING
    if statuses and all(s == DeploymentStatus.SUCCESS for s in statuses):
        return BadgeTier.SUCCESS
    return BadgeTier.UNKNOWN


def active_services(projects: Sequence[Project]) -> list[ActiveService]:
    return [
        ActiveService(project.name, service.name, service.status)
        for project in projects
        for service in project.services
        if service.status.is_active
    ]


def ticker_service(
    projects: Sequence[Project], index: int
) -> ActiveService | None:
    """Active service selected by the rotation index."""
    active = active_services(projects)
    if not active:
        return None
    return active[index % len(active)]


def next_ticker_index(current: int, active_count: int) -> int:
    """Advance the rotation index, or reset it when nothing is active."""
    if active_count <= 0:
        return 0
    return (current + 1) % active_count


def derive_rate_limit_warning(
    remaining: int | None, limit: int | None
) -> RateLimitWarning | None:
    """Warning for an exhausted or low budget, None when healthy or unknown."""
    if remaining is None:
        return None
    if remaining <= 0:
        return RateLimitWarning(
            kind=WarningKind.EXHAUSTED,
            remaining=remaining,
            limit=limit,
            message="Rate limit reached – pausing until reset",
        )
    if limit is not None and remaining / max(limit, 1) < 0.25:
        return RateLimitWarning(
            kind=WarningKind.LOW,
            remaining=remaining,
            limit=limit,
            message=f"Rate limit low ({remaining}/{limit} remaining)",
        )
    return None


def overall_health(snapshot: MonitorSnapshot, configured: bool) -> OverallHealth:
    if not configured:
        return OverallHealth.UNCONFIGURED
    if snapshot.is_loading and not snapshot.projects:
        return OverallHealth.LOADING
    if snapshot.error is not None:
        return OverallHealth.ERROR

    counts = count_statuses(snapshot.projects)
    if counts.errored > 0:
        return OverallHealth.CRASHED
    if counts.active > 0:
        return OverallHealth.BUILDING
    return OverallHealth.OK


def summarize(snapshot: MonitorSnapshot, configured: bool = True) -> StatusSummary:
    """Build the full condensed summary for a snapshot."""
    projects = snapshot.projects
    return StatusSummary(
        health=overall_health(snapshot, configured),
        counts=count_statuses(projects),
        badges={project.id: project_badge(project) for project in projects},
        active_services=active_services(projects),
        ticker_service=ticker_service(projects, snapshot.ticker_index),
    )
