"""
Pytest configuration and fixtures for RailBar tests.
"""

from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock

import pytest

from railbar.config import Settings, TransportConfig
from railbar.models import Deployment, DeploymentStatus, Environment, Project, Service
from railbar.polling.fetcher import DeploymentFetcher
from railbar.polling.rate_limiter import RateLimitBudget
from railbar.railway_client import RailwayClient
from railbar.state.token_store import InMemoryTokenStore

API_URL = "https://backboard.railway.com/graphql/v2"


@pytest.fixture
def mock_settings(tmp_path) -> Settings:
    """Settings for testing."""
    return Settings(
        railway_api_token="test-token",
        token_file=str(tmp_path / "token"),
        debug=True,
        log_level="DEBUG",
    )


@pytest.fixture
def budget() -> RateLimitBudget:
    return RateLimitBudget()


@pytest.fixture
def railway_client(budget: RateLimitBudget) -> RailwayClient:
    """Client whose sleeps return immediately and are recorded."""
    client = RailwayClient(TransportConfig(api_url=API_URL), budget)
    client._sleep = AsyncMock()
    return client


@pytest.fixture
def mock_fetcher() -> AsyncMock:
    fetcher = AsyncMock(spec=DeploymentFetcher)
    fetcher.fetch_projects.return_value = []
    return fetcher


@pytest.fixture
def token_store() -> InMemoryTokenStore:
    return InMemoryTokenStore("test-token")


def make_deployment(
    status: DeploymentStatus, deployment_id: str = "dep-1"
) -> Deployment:
    return Deployment(
        id=deployment_id,
        status=status,
        created_at=datetime(2024, 1, 15, 10, 0, tzinfo=UTC),
    )


def make_project(
    name: str, statuses: list[DeploymentStatus | None], project_id: str | None = None
) -> Project:
    """Project with one service per status; None means no deployment."""
    services = [
        Service(
            id=f"{name}-svc-{i}",
            name=f"{name}-service-{i}",
            latest_deployment=(
                make_deployment(status) if status is not None else None
            ),
        )
        for i, status in enumerate(statuses)
    ]
    return Project(
        id=project_id or f"{name}-id",
        name=name,
        services=services,
        environments=[Environment(id=f"{name}-env", name="production")],
    )


def deployment_connection(
    deployment_id: str = "dep-1",
    status: str = "SUCCESS",
    created_at: str = "2024-01-15T10:00:00.123Z",
) -> dict[str, Any]:
    return {
        "edges": [
            {"node": {"id": deployment_id, "status": status, "createdAt": created_at}}
        ]
    }


@pytest.fixture
def sample_projects_data() -> dict[str, Any]:
    """Projects query payload with two projects."""
    return {
        "projects": {
            "edges": [
                {
                    "node": {
                        "id": "proj-1",
                        "name": "web-app",
                        "services": {
                            "edges": [
                                {"node": {"id": "svc-api", "name": "api", "icon": None}},
                                {
                                    "node": {
                                        "id": "svc-worker",
                                        "name": "worker",
                                        "icon": "https://example.com/worker.svg",
                                    }
                                },
                            ]
                        },
                        "environments": {
                            "edges": [
                                {"node": {"id": "env-staging", "name": "staging"}},
                                {"node": {"id": "env-prod", "name": "Production"}},
                            ]
                        },
                    }
                },
                {
                    "node": {
                        "id": "proj-2",
                        "name": "side-project",
                        "services": {
                            "edges": [
                                {"node": {"id": "svc-db", "name": "postgres"}},
                            ]
                        },
                        "environments": {"edges": []},
                    }
                },
            ]
        }
    }
