"""
Status endpoints for RailBar.

This module exposes the polling controller's snapshot and summary as
read-only JSON, plus manual refresh and token update actions.
"""

from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from .exceptions import ConfigurationError
from .models import Project
from .polling.orchestrator import PollingController
from .polling.status import MonitorSnapshot, project_badge

logger = structlog.get_logger(__name__)


class TokenUpdate(BaseModel):
    token: str


def serialize_project(project: Project) -> dict[str, Any]:
    return {
        "id": project.id,
        "name": project.name,
        "badge": project_badge(project).value,
        "environments": [
            {"id": env.id, "name": env.name} for env in project.environments
        ],
        "services": [
            {
                "id": service.id,
                "name": service.name,
                "icon": service.icon,
                "status": service.status.value,
                "deployment": (
                    {
                        "id": service.latest_deployment.id,
                        "status": service.latest_deployment.status.value,
                        "created_at": service.latest_deployment.created_at.isoformat(),
                    }
                    if service.latest_deployment
                    else None
                ),
            }
            for service in project.services
        ],
    }


def serialize_snapshot(snapshot: MonitorSnapshot) -> dict[str, Any]:
    warning = snapshot.rate_limit_warning
    return {
        "is_loading": snapshot.is_loading,
        "error": snapshot.error,
        "rate_limit_warning": (
            {
                "kind": warning.kind.value,
                "remaining": warning.remaining,
                "limit": warning.limit,
                "message": warning.message,
            }
            if warning
            else None
        ),
        "ticker_index": snapshot.ticker_index,
        "last_updated": (
            snapshot.last_updated.isoformat() if snapshot.last_updated else None
        ),
    }


class StatusAPI:
    """
    Read-only status surface over the polling controller.

    The controller is looked up on ``app.state.controller`` per request.
    """

    def __init__(self) -> None:
        """Initialize the status API."""
        self.router = APIRouter()
        self._setup_routes()

    def _setup_routes(self) -> None:
        """Set up status routes."""
        self.router.get("/status")(self.get_status)
        self.router.get("/projects")(self.get_projects)
        self.router.post("/refresh")(self.refresh)
        self.router.put("/token")(self.update_token)

    def _get_controller(self, request: Request) -> PollingController:
        controller = getattr(request.app.state, "controller", None)
        if controller is None:
            raise HTTPException(status_code=503, detail="Controller not initialized")
        return controller

    async def get_status(self, request: Request) -> dict[str, Any]:
        """Snapshot flags plus the condensed summary."""
        controller = self._get_controller(request)
        snapshot = controller.snapshot
        return {
            "configured": controller.is_configured,
            "polling": controller.is_polling,
            "interval_seconds": controller.current_interval,
            **serialize_snapshot(snapshot),
            "summary": controller.summary().to_dict(),
        }

    async def get_projects(self, request: Request) -> list[dict[str, Any]]:
        """Current project tree."""
        controller = self._get_controller(request)
        return [serialize_project(p) for p in controller.snapshot.projects]

    async def refresh(self, request: Request) -> dict[str, Any]:
        """Run a fetch cycle now (manual retry)."""
        controller = self._get_controller(request)
        if not controller.is_configured:
            raise HTTPException(status_code=409, detail="API token not configured")

        ran = await controller.refresh()
        logger.info("Manual refresh requested", ran=ran)
        return {"refreshed": ran, **serialize_snapshot(controller.snapshot)}

    async def update_token(
        self, request: Request, payload: TokenUpdate
    ) -> dict[str, Any]:
        """Store a new API token and restart polling."""
        controller = self._get_controller(request)
        try:
            await controller.update_token(payload.token.strip())
        except ConfigurationError as e:
            logger.error("Failed to store API token", error=str(e))
            raise HTTPException(status_code=500, detail=str(e)) from e
        return {
            "configured": controller.is_configured,
            "polling": controller.is_polling,
        }
