"""
Deployment fetch cycle for the RailBar polling system.

Enumerates projects, resolves each project's production environment,
batch-fetches the latest deployment per service and merges the results
back into a fresh project tree.
"""

from collections.abc import Sequence
from dataclasses import replace
from typing import TYPE_CHECKING

import structlog

from ..models import Environment, Project, Service
from ..schemas import ProjectsQueryData
from .batcher import DeploymentRequest, QueryBatcher

if TYPE_CHECKING:
    from ..railway_client import RailwayClient

logger = structlog.get_logger(__name__)

PROJECTS_QUERY = """
query {
    projects {
        edges {
            node {
                id
                name
                services {
                    edges {
                        node {
                            id
                            name
                            icon
                        }
                    }
                }
                environments {
                    edges {
                        node {
                            id
                            name
                        }
                    }
                }
            }
        }
    }
}
"""


def resolve_production_environment(
    environments: Sequence[Environment],
) -> Environment | None:
    """Pick the environment named "production", else the first one listed."""
    for environment in environments:
        if environment.is_production:
            return environment
    return environments[0] if environments else None


class DeploymentFetcher:
    """Runs one full fetch cycle against the Railway API."""

    def __init__(self, client: "RailwayClient", batcher: QueryBatcher) -> None:
        self.client = client
        self.batcher = batcher

    async def fetch_projects(self, token: str) -> list[Project]:
        """
        Fetch every project with the latest deployment of each service.

        Args:
            token: Railway API token

        Returns:
            Fully populated project tree

        Raises:
            RailwayAPIError: The enumeration or any deployment batch failed
        """
        logger.info("Fetching all projects")
        data = await self.client.execute(
            PROJECTS_QUERY, token, model=ProjectsQueryData
        )
        logger.info("Got projects", count=len(data.projects.edges))

        projects: list[Project] = []
        requests: list[DeploymentRequest] = []

        for project_index, node in enumerate(data.projects.nodes):
            environments = [
                Environment(id=env.id, name=env.name)
                for env in node.environments.nodes
            ]
            production = resolve_production_environment(environments)

            services: list[Service] = []
            for service_index, service_node in enumerate(node.services.nodes):
                services.append(
                    Service(
                        id=service_node.id,
                        name=service_node.name,
                        icon=service_node.icon,
                    )
                )
                if production is not None:
                    requests.append(
                        DeploymentRequest(
                            project_index=project_index,
                            service_index=service_index,
                            service_id=service_node.id,
                            environment_id=production.id,
                        )
                    )

            if production is None and services:
                logger.debug(
                    "Project has no environments, skipping deployment lookups",
                    project=node.name,
                )

            projects.append(
                Project(
                    id=node.id,
                    name=node.name,
                    services=services,
                    environments=environments,
                )
            )

        logger.info(
            "Fetching deployments",
            services=len(requests),
            batch_size=self.batcher.batch_size,
        )
        deployments = await self.batcher.fetch_all(requests, token)

        for request, deployment in zip(requests, deployments, strict=True):
            if deployment is None:
                continue
            services = projects[request.project_index].services
            services[request.service_index] = replace(
                services[request.service_index], latest_deployment=deployment
            )

        logger.info("Loaded projects", count=len(projects))
        return projects
