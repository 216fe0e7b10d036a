"""
Polling controller for RailBar.

This module owns the refresh cadence: it triggers fetch cycles, adapts the
refresh interval to the rate limit budget and rotates the ticker over
actively-deploying services.
"""

import asyncio
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

import structlog

from ..exceptions import ConfigurationError, RailBarError
from ..state.token_store import TokenStore
from .fetcher import DeploymentFetcher
from .rate_limiter import DEFAULT_INTERVAL_SECONDS, RateLimitBudget
from .status import (
    MonitorSnapshot,
    StatusSummary,
    active_services,
    derive_rate_limit_warning,
    next_ticker_index,
    summarize,
)

logger = structlog.get_logger(__name__)

DEFAULT_TICKER_INTERVAL_SECONDS = 3.0


class PollingController:
    """
    Drives periodic fetch cycles and exposes the resulting snapshot.

    While polling, two independent tasks run: a refresh timer at the current
    adaptive interval and a fixed-period ticker timer. At most one fetch cycle
    is in flight at any time.
    """

    def __init__(
        self,
        fetcher: DeploymentFetcher,
        budget: RateLimitBudget,
        token_store: TokenStore,
        ticker_interval_seconds: float = DEFAULT_TICKER_INTERVAL_SECONDS,
    ):
        """
        Initialize the polling controller.

        Args:
            fetcher: Deployment fetcher running one cycle per call
            budget: Rate limit budget shared with the transport
            token_store: API token storage
            ticker_interval_seconds: Ticker rotation period
        """
        self.fetcher = fetcher
        self.budget = budget
        self.token_store = token_store
        self.ticker_interval_seconds = ticker_interval_seconds
        self.current_interval = DEFAULT_INTERVAL_SECONDS

        self._snapshot = MonitorSnapshot()
        self._refresh_timer: asyncio.Task[None] | None = None
        self._ticker_timer: asyncio.Task[None] | None = None
        self._fetch_task: asyncio.Task[bool] | None = None
        self._fetch_in_progress = False
        # Bumped on stop so results of fetches started earlier are discarded
        self._generation = 0

    @property
    def snapshot(self) -> MonitorSnapshot:
        return self._snapshot

    @property
    def is_polling(self) -> bool:
        return self._refresh_timer is not None or self._ticker_timer is not None

    @property
    def is_fetching(self) -> bool:
        return self._fetch_in_progress

    @property
    def is_configured(self) -> bool:
        """Whether a token is stored. An unreadable store counts as unconfigured."""
        try:
            return bool(self._load_token())
        except ConfigurationError as e:
            self._record_token_error(e)
            return False

    def _load_token(self) -> str:
        return self.token_store.load() or ""

    def _apply(self, **changes: Any) -> None:
        self._snapshot = replace(self._snapshot, **changes)

    def _record_token_error(self, error: ConfigurationError) -> None:
        logger.error("Cannot load API token", error=str(error))
        self._apply(error=str(error))

    def summary(self) -> StatusSummary:
        """Condensed status summary of the current snapshot."""
        configured = self.is_configured
        return summarize(self._snapshot, configured)

    async def start(self) -> None:
        """Start polling, restarting any timers already running."""
        await self.stop()

        if not self.is_configured:
            logger.info("No API token configured, polling not started")
            return

        self.current_interval = DEFAULT_INTERVAL_SECONDS
        logger.info(
            "Starting polling",
            interval_seconds=self.current_interval,
            ticker_interval_seconds=self.ticker_interval_seconds,
        )

        self._spawn_fetch()
        self._arm_refresh_timer()
        self._ticker_timer = asyncio.create_task(
            self._ticker_loop(), name="railbar-ticker"
        )

    async def stop(self) -> None:
        """Stop polling. Safe to call when already stopped."""
        tasks = [
            task
            for task in (self._refresh_timer, self._ticker_timer, self._fetch_task)
            if task is not None and not task.done()
        ]
        was_polling = self.is_polling
        self._refresh_timer = None
        self._ticker_timer = None
        self._fetch_task = None
        self._generation += 1

        if not was_polling and not tasks:
            return

        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        logger.info("Polling stopped")

    async def update_token(self, token: str) -> None:
        """
        Store a new API token and restart polling with it.

        An empty token clears the stored one and stops polling.
        """
        self.token_store.save(token)
        if token:
            await self.start()
        else:
            await self.stop()
            self._snapshot = MonitorSnapshot()

    async def refresh(self) -> bool:
        """
        Run one fetch cycle and apply its result.

        Returns:
            False if the cycle was skipped (unconfigured or already fetching)
        """
        try:
            token = self._load_token()
        except ConfigurationError as e:
            self._record_token_error(e)
            return False
        if not token:
            logger.debug("Skipping fetch, no API token configured")
            return False

        if self._fetch_in_progress:
            logger.debug("Fetch already in progress, skipping")
            return False

        self._fetch_in_progress = True
        generation = self._generation
        self._apply(is_loading=True, error=None)

        try:
            projects = await self.fetcher.fetch_projects(token)
        except RailBarError as e:
            logger.error("Fetch cycle failed", error=str(e), code=e.code)
            if generation == self._generation:
                self._apply(error=str(e))
        except Exception as e:
            logger.exception("Unexpected error in fetch cycle")
            if generation == self._generation:
                self._apply(error=str(e))
        else:
            if generation == self._generation:
                self._apply(projects=tuple(projects), last_updated=datetime.now(UTC))
            else:
                logger.info("Discarding result of fetch started before stop")
        finally:
            self._fetch_in_progress = False
            self._apply(is_loading=False)

        self._adapt_polling_interval()

        # A restart during this fetch had its own fetch skipped by the guard
        if generation != self._generation and self.is_polling:
            logger.info("Polling restarted during fetch, fetching again")
            self._spawn_fetch()
        return True

    def advance_ticker(self) -> int:
        """Advance the active-service rotation index."""
        active_count = len(active_services(self._snapshot.projects))
        index = next_ticker_index(self._snapshot.ticker_index, active_count)
        self._apply(ticker_index=index)
        return index

    def _adapt_polling_interval(self) -> None:
        """Recompute the budget warning and the refresh interval."""
        budget = self.budget.snapshot()
        self._apply(
            rate_limit_warning=derive_rate_limit_warning(
                budget.remaining, budget.limit
            )
        )

        suggested = self.budget.suggested_interval()
        if suggested == self.current_interval:
            return

        logger.info(
            "Adjusting poll interval",
            previous_seconds=self.current_interval,
            new_seconds=suggested,
            remaining=budget.remaining,
            limit=budget.limit,
        )
        self.current_interval = suggested
        if self._refresh_timer is not None:
            self._arm_refresh_timer()

    def _arm_refresh_timer(self) -> None:
        if self._refresh_timer is not None:
            self._refresh_timer.cancel()
        self._refresh_timer = asyncio.create_task(
            self._refresh_loop(self.current_interval), name="railbar-refresh"
        )

    def _spawn_fetch(self) -> None:
        if self._fetch_task is not None and not self._fetch_task.done():
            logger.debug("Previous fetch still running, skipping tick")
            return
        self._fetch_task = asyncio.create_task(self.refresh(), name="railbar-fetch")

    async def _refresh_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self._spawn_fetch()

    async def _ticker_loop(self) -> None:
        while True:
            await asyncio.sleep(self.ticker_interval_seconds)
            self.advance_ticker()
