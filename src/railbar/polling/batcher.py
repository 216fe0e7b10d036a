"""
Deployment query batching for the RailBar polling system.

Latest-deployment lookups are multiplexed into a single GraphQL request per
batch using field aliases ``d0`` .. ``dN-1``.
"""

import json
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from ..models import Deployment, DeploymentStatus
from ..schemas import DeploymentConnection

if TYPE_CHECKING:
    from ..railway_client import RailwayClient

logger = structlog.get_logger(__name__)

DEFAULT_BATCH_SIZE = 5
ALIAS_PREFIX = "d"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%f%z"

_DEPLOYMENT_FIELD = """    {alias}: deployments(
        first: 1
        input: {{
            serviceId: {service_id}
            environmentId: {environment_id}
        }}
    ) {{
        edges {{
            node {{
                id
                status
                createdAt
            }}
        }}
    }}"""

_BATCH_RESULT = dict[str, DeploymentConnection | None]


@dataclass(frozen=True)
class DeploymentRequest:
    """Latest-deployment lookup for one service, with its tree position."""

    project_index: int
    service_index: int
    service_id: str
    environment_id: str


def alias_for(index: int) -> str:
    return f"{ALIAS_PREFIX}{index}"


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp with fractional seconds.

    Unparseable values fall back to the current time so that one bad record
    does not fail the whole fetch.
    """
    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT)
    except (TypeError, ValueError):
        logger.debug("Unparseable deployment timestamp", value=value)
        return datetime.now(UTC)


def build_batch_query(requests: Sequence[DeploymentRequest]) -> str:
    """Build one aliased query covering every request."""
    fields = [
        _DEPLOYMENT_FIELD.format(
            alias=alias_for(i),
            service_id=json.dumps(request.service_id),
            environment_id=json.dumps(request.environment_id),
        )
        for i, request in enumerate(requests)
    ]
    return "query {\n" + "\n".join(fields) + "\n}"


def chunked(
    requests: Sequence[DeploymentRequest], size: int
) -> list[list[DeploymentRequest]]:
    return [list(requests[i : i + size]) for i in range(0, len(requests), size)]


class QueryBatcher:
    """
    Batches latest-deployment lookups into aliased GraphQL queries.

    Results are always returned positionally aligned with the requests,
    even though the response itself is keyed by alias.
    """

    def __init__(
        self, client: "RailwayClient", batch_size: int = DEFAULT_BATCH_SIZE
    ) -> None:
        """
        Initialize the query batcher.

        Args:
            client: Railway API client
            batch_size: Lookups per round trip
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self.client = client
        self.batch_size = batch_size

    async def fetch_batch(
        self, requests: Sequence[DeploymentRequest], token: str
    ) -> list[Deployment | None]:
        """
        Fetch the latest deployment for each request in one round trip.

        Args:
            requests: Lookups to multiplex into a single query
            token: Railway API token

        Returns:
            One entry per request, None where no deployment exists
        """
        if not requests:
            return []

        query = build_batch_query(requests)
        logger.debug("Batched deployment query", services=len(requests))

        data = await self.client.execute(query, token, model=_BATCH_RESULT)

        results: list[Deployment | None] = []
        for i in range(len(requests)):
            connection = data.get(alias_for(i))
            if connection is None or not connection.edges:
                results.append(None)
                continue

            node = connection.edges[0].node
            results.append(
                Deployment(
                    id=node.id,
                    status=DeploymentStatus.from_api(node.status),
                    created_at=parse_timestamp(node.created_at),
                )
            )

        return results

    async def fetch_all(
        self, requests: Sequence[DeploymentRequest], token: str
    ) -> list[Deployment | None]:
        """
        Fetch deployments for all requests, one round trip per chunk.

        The first failing chunk aborts the whole operation.
        """
        results: list[Deployment | None] = []
        for chunk in chunked(requests, self.batch_size):
            results.extend(await self.fetch_batch(chunk, token))
        return results
