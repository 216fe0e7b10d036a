"""
GraphQL payload schemas for the Railway API.

Pydantic models describing the response envelope and the connection
shapes of the projects and deployments queries.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

NodeT = TypeVar("NodeT")


class GraphQLErrorItem(BaseModel):
    """Single entry of the GraphQL ``errors`` array."""

    model_config = ConfigDict(extra="ignore")

    message: str = ""


class GraphQLEnvelope(BaseModel):
    """Top level ``{data, errors}`` response envelope."""

    model_config = ConfigDict(extra="ignore")

    data: Any | None = None
    errors: list[GraphQLErrorItem] | None = None


class Edge(BaseModel, Generic[NodeT]):
    node: NodeT


class Connection(BaseModel, Generic[NodeT]):
    """Relay-style connection; only the first page is ever read."""

    edges: list[Edge[NodeT]] = Field(default_factory=list)

    @property
    def nodes(self) -> list[NodeT]:
        return [edge.node for edge in self.edges]


class ServiceNode(BaseModel):
    id: str
    name: str
    icon: str | None = None


class EnvironmentNode(BaseModel):
    id: str
    name: str


class ProjectNode(BaseModel):
    id: str
    name: str
    services: Connection[ServiceNode] = Field(default_factory=Connection[ServiceNode])
    environments: Connection[EnvironmentNode] = Field(
        default_factory=Connection[EnvironmentNode]
    )


class ProjectsQueryData(BaseModel):
    """Data returned by the projects enumeration query."""

    projects: Connection[ProjectNode]


class DeploymentNode(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    status: str
    created_at: str = Field(alias="createdAt")


DeploymentConnection = Connection[DeploymentNode]
