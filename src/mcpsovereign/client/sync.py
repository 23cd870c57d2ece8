"""Sync coordinator for pushing and pulling the local store.

This module provides:
- SyncCoordinator: one push (local -> remote) or pull (remote -> local)
  per call, built on LocalStoreManager and SovereignClient
- Retry constants for push_with_retry

Push flow:
    1. Resolve the agent id (explicit or via /auth/me)
    2. Ask the store for a manifest
    3. POST it to /sync/push
    4. Only on a well-formed SyncResult: apply it to the store and save

Any failure before step 4 leaves the store untouched. Because manifests
are idempotent, an interrupted or failed push is safe to repeat.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from mcpsovereign.client.models import PullResult, SyncResult
from mcpsovereign.core.result import Err, ErrorKind, Ok, Result

if TYPE_CHECKING:
    from mcpsovereign.client.api import SovereignClient
    from mcpsovereign.client.store import LocalStoreManager

logger = logging.getLogger(__name__)

# Default retry configuration
DEFAULT_MAX_RETRIES = 5
DEFAULT_INITIAL_BACKOFF = 1.0  # seconds
DEFAULT_MAX_BACKOFF = 60.0  # seconds
DEFAULT_BACKOFF_MULTIPLIER = 2.0


class SyncCoordinator:
    """Orchestrates push and pull between the local store and the API.

    Usage:
        store = LocalStoreManager(config.store_path)
        store.load()
        async with SovereignClient(config) as client:
            coordinator = SyncCoordinator(store, client)
            result = await coordinator.push()
            if isinstance(result, Err):
                ...
    """

    def __init__(self, store: LocalStoreManager, client: SovereignClient) -> None:
        self._store = store
        self._client = client

    async def push(self, agent_id: str | None = None) -> Result[SyncResult]:
        """Push local changes to the marketplace.

        Args:
            agent_id: Agent id for the manifest. Looked up via /auth/me if omitted.

        Returns:
            Ok with the applied SyncResult (check its errors list), or Err.
        """
        if agent_id is None:
            agent = await self._client.get_agent_info()
            if isinstance(agent, Err):
                return Err(
                    ErrorKind.AUTHENTICATION,
                    f"Must be authenticated to push ({agent.message})",
                    code="NOT_AUTHENTICATED",
                    status_code=agent.status_code,
                )
            agent_id = agent.value.id

        manifest = self._store.generate_sync_manifest(agent_id)
        logger.info(
            "Pushing manifest: %d entries, %d actionable",
            len(manifest.products),
            len(manifest.actionable),
        )

        response = await self._client.push_manifest(manifest.to_dict())
        if isinstance(response, Err):
            logger.warning("Push failed: %s", response)
            return response

        try:
            result = SyncResult.from_dict(response.value)
        except ValueError as e:
            logger.warning("Push returned an invalid result: %s", e)
            return Err(
                ErrorKind.INVALID_RESPONSE,
                str(e),
                code="INVALID_RESPONSE",
                billing=response.billing,
            )

        self._store.apply_sync_results(result)
        if not self._store.save():
            return Err(
                ErrorKind.STORAGE,
                f"Push {result.sync_id} succeeded but the store could not be saved",
                code="STORAGE_ERROR",
                billing=response.billing,
            )

        logger.info(
            "Push %s: %d created, %d updated, %d deleted, %d errors",
            result.sync_id,
            len(result.created),
            len(result.updated),
            len(result.deleted),
            len(result.errors),
        )
        return Ok(result, response.billing)

    async def push_with_retry(
        self,
        agent_id: str | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
        max_backoff: float = DEFAULT_MAX_BACKOFF,
        backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> Result[SyncResult]:
        """Push, retrying with exponential backoff on network failures.

        Only ErrorKind.NETWORK is retried; any other outcome is returned
        as is.

        Args:
            agent_id: Agent id for the manifest.
            max_retries: Maximum number of retry attempts.
            initial_backoff: Initial backoff time in seconds.
            max_backoff: Maximum backoff time in seconds.
            backoff_multiplier: Multiplier for each retry.
            sleep: Awaitable sleep function.

        Returns:
            Result of the last attempt.
        """
        backoff = initial_backoff
        attempt = 0
        while True:
            result = await self.push(agent_id)
            if not isinstance(result, Err) or result.kind is not ErrorKind.NETWORK:
                return result
            if attempt == max_retries:
                logger.error(f"All {max_retries} retries failed: {result}")
                return result

            attempt += 1
            logger.warning(
                f"Attempt {attempt}/{max_retries + 1} failed: {result}. "
                f"Retrying in {backoff:.1f}s..."
            )
            await sleep(backoff)
            backoff = min(backoff * backoff_multiplier, max_backoff)

    async def pull(self, since: str | None = None) -> Result[PullResult]:
        """Fetch remote-side activity (purchases, reviews, stats).

        Local products are never modified. Call
        LocalStoreManager.record_pull() to keep it in the sync history.

        Args:
            since: ISO timestamp cursor; None fetches from the beginning.
        """
        response = await self._client.pull(since)
        if isinstance(response, Err):
            logger.warning("Pull failed: %s", response)
            return response

        try:
            result = PullResult.from_dict(response.value)
        except ValueError as e:
            return Err(
                ErrorKind.INVALID_RESPONSE,
                str(e),
                code="INVALID_RESPONSE",
                billing=response.billing,
            )

        logger.info(
            "Pull %s: %d purchases, %d reviews, %d product updates",
            result.sync_id,
            len(result.new_purchases),
            len(result.new_reviews),
            len(result.product_updates),
        )
        return Ok(result, response.billing)

    async def status(self) -> Result[Any]:
        """Remote sync status (last sync, pending purchases/reviews)."""
        return await self._client.get_sync_status()
