"""
Railway API client for RailBar.

This module provides the GraphQL transport used by the polling engine:
bearer authentication, proactive rate-limit waits, HTTP-level retry on 429
and budget header ingestion after every response.
"""

import asyncio
import math
from typing import Any

import httpx
import structlog
from pydantic import TypeAdapter, ValidationError

from .config import RAILWAY_GRAPHQL_URL, TransportConfig
from .exceptions import (
    RailwayConnectionError,
    RailwayGraphQLError,
    RailwayHTTPError,
    RailwayInvalidResponseError,
    RailwayNoDataError,
    RailwayRateLimitError,
)
from .polling.rate_limiter import RateLimitBudget
from .schemas import GraphQLEnvelope

logger = structlog.get_logger(__name__)

RETRY_AFTER_HEADER = "Retry-After"


class RailwayClient:
    """
    Railway GraphQL API client with rate limiting.

    Every call consults the shared :class:`RateLimitBudget` before sending and
    feeds it the headers of every response it receives, whatever the status.
    """

    def __init__(
        self,
        config: TransportConfig | None = None,
        budget: RateLimitBudget | None = None,
    ) -> None:
        """
        Initialize the Railway client.

        Args:
            config: Transport configuration
            budget: Shared rate limit budget
        """
        self.config = config or TransportConfig()
        self.budget = budget or RateLimitBudget()

    @property
    def endpoint(self) -> str:
        return self.config.api_url or RAILWAY_GRAPHQL_URL

    async def _sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)

    def _retry_delay(self, response: httpx.Response, attempt: int) -> float:
        """Delay before the next attempt after a 429."""
        retry_after = response.headers.get(RETRY_AFTER_HEADER)
        if retry_after is not None:
            try:
                delay = float(retry_after.strip())
            except ValueError:
                delay = math.nan
            if math.isfinite(delay):
                return max(delay, 0.0)
        return float((attempt + 1) * 2)

    async def execute(
        self,
        query: str,
        token: str,
        variables: dict[str, Any] | None = None,
        model: Any = None,
    ) -> Any:
        """
        Execute a GraphQL query.

        Args:
            query: GraphQL query text
            token: Railway API token
            variables: Optional query variables
            model: Optional decode target for the ``data`` payload

        Returns:
            The decoded ``data`` payload

        Raises:
            RailwayConnectionError: No HTTP response was received
            RailwayHTTPError: Status other than 200 or 429
            RailwayGraphQLError: The response carried GraphQL errors
            RailwayNoDataError: The response carried no data
            RailwayInvalidResponseError: The body could not be decoded
            RailwayRateLimitError: Every attempt was answered with 429
        """
        body: dict[str, Any] = {"query": query}
        if variables is not None:
            body["variables"] = variables

        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

        wait_time = self.budget.seconds_until_ready()
        if wait_time > 0:
            logger.info(
                "Rate limit budget exhausted, waiting for reset",
                wait_seconds=wait_time,
            )
            await self._sleep(wait_time)

        max_attempts = self.config.max_attempts
        async with httpx.AsyncClient(timeout=self.config.timeout_seconds) as client:
            for attempt in range(max_attempts):
                try:
                    response = await client.post(
                        self.endpoint, json=body, headers=headers
                    )
                except httpx.TransportError as e:
                    logger.error("Railway API request failed", error=str(e))
                    raise RailwayConnectionError(
                        f"Could not reach Railway API: {e}"
                    ) from e

                # Budget observation precedes every decision below
                self.budget.observe(response.headers)

                if response.status_code == httpx.codes.TOO_MANY_REQUESTS:
                    delay = self._retry_delay(response, attempt)
                    logger.warning(
                        "Rate limited by Railway API",
                        retry_after_seconds=delay,
                        attempt=attempt + 1,
                        max_attempts=max_attempts,
                    )
                    await self._sleep(delay)
                    continue

                if response.status_code != httpx.codes.OK:
                    logger.error(
                        "Railway API returned an error status",
                        status_code=response.status_code,
                        body=response.text[:500],
                    )
                    raise RailwayHTTPError(response.status_code)

                return self._decode(response, model)

        logger.error("Max retries exhausted", max_attempts=max_attempts)
        raise RailwayRateLimitError(reset_time=self.budget.reset_at)

    def _decode(self, response: httpx.Response, model: Any) -> Any:
        """Decode the ``{data, errors}`` envelope of a 200 response."""
        try:
            envelope = GraphQLEnvelope.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error("Malformed GraphQL envelope", error=str(e))
            raise RailwayInvalidResponseError() from e

        if envelope.errors:
            messages = [error.message for error in envelope.errors]
            logger.error("GraphQL errors", messages=messages)
            raise RailwayGraphQLError(messages)

        if envelope.data is None:
            raise RailwayNoDataError()

        if model is None:
            return envelope.data

        try:
            return TypeAdapter(model).validate_python(envelope.data)
        except ValidationError as e:
            logger.error(
                "GraphQL data did not match expected shape",
                model=getattr(model, "__name__", str(model)),
                error=str(e),
            )
            raise RailwayInvalidResponseError() from e
