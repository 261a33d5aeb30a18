"""
Cached grants pipeline.

Keeps the ``grants_cache`` table filled with at most 5 featured grants for
the homepage.

FLOW:
    1. Fetch grants from Sonar for a fixed profile
    2. Transform and keep the first 5
    3. Delete every cached row
    4. Insert the new rows, all featured
    5. Refresh the ``popular_open`` materialized view (best effort)

Delete and insert are separate statements. If the insert fails after the
delete succeeded, the cache stays empty until the next sync.

TRIGGERS:
    - Scheduled: ``python -m grantbridge.scripts.sync_grants`` from cron
    - Manual: POST /api/sync-grants
    - Automatic: GET /api/featured-grants when the cache is empty or stale
"""

import logging
import random
import threading
from dataclasses import dataclass
from typing import List, Optional

from grantbridge.core.domain_models import CachedGrant
from grantbridge.core.errors import CacheWriteError, GrantBridgeError
from grantbridge.core.profile import LegacyProfile
from grantbridge.pipeline.fetcher import DEFAULT_PROFILE, fetch_grants
from grantbridge.pipeline.transform import transform_grants


logger = logging.getLogger(__name__)

MAX_CACHED_GRANTS = 5


@dataclass
class SyncResult:
    fetched: int
    stored: int
    view_refreshed: bool


def write_cache(
    store,
    grants: List[CachedGrant],
    max_rows: int = MAX_CACHED_GRANTS,
) -> SyncResult:
    """
    Replace the cache contents with the first ``max_rows`` grants.

    Args:
        store: Cache store exposing delete_all, insert_grants and
               refresh_popular_open
        grants: Transformed grants
        max_rows: Row cap

    Returns:
        SyncResult (``fetched`` is the number of grants passed in)

    Raises:
        CacheWriteError: If the delete or the insert fails
    """
    if len(grants) > max_rows:
        logger.info(f"Limiting from {len(grants)} to {max_rows} grants")
    rows = [grant.model_copy(update={"is_featured": True}) for grant in grants[:max_rows]]

    logger.info("Clearing existing grants from grants_cache...")
    deleted = store.delete_all()
    logger.info(f"Deleted {deleted} cached grants")

    logger.info("Inserting new grants to grants_cache...")
    stored = store.insert_grants(rows)
    logger.info(f"✓ Inserted {stored} grants")

    view_refreshed = True
    try:
        store.refresh_popular_open()
        logger.info("✓ Refreshed popular_open view")
    except CacheWriteError as e:
        view_refreshed = False
        logger.warning(f"Materialized view refresh warning: {e.message}")
        logger.info("Continuing without materialized view refresh")

    return SyncResult(fetched=len(grants), stored=stored, view_refreshed=view_refreshed)


def sync_grants(
    client,
    store,
    profile: LegacyProfile = DEFAULT_PROFILE,
    max_rows: int = MAX_CACHED_GRANTS,
    rng: Optional[random.Random] = None,
) -> SyncResult:
    """
    Run the whole pipeline once.

    Raises:
        UpstreamError, ResponseParseError: If fetching fails
        CacheWriteError: If the cache cannot be rewritten
    """
    logger.info("Starting grants sync...")
    try:
        records = fetch_grants(client, profile)
        grants = transform_grants(records, rng=rng)
        logger.info(f"Transformed {len(grants)} grants")
        result = write_cache(store, grants, max_rows=max_rows)
    except GrantBridgeError as e:
        logger.error(f"✗ Grants sync failed: {e.message}")
        raise

    logger.info("✓ Grants sync completed")
    return result


class GrantSyncService:
    """
    Runs syncs one at a time within this process.

    Separate processes (cron next to the API) are not coordinated.
    """

    def __init__(
        self,
        client,
        store,
        profile: LegacyProfile = DEFAULT_PROFILE,
        max_rows: int = MAX_CACHED_GRANTS,
        rng: Optional[random.Random] = None,
    ):
        self.client = client
        self.store = store
        self.profile = profile
        self.max_rows = max_rows
        self.rng = rng
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    def run(self) -> SyncResult:
        """Sync now, waiting for any sync already in progress."""
        with self._lock:
            return sync_grants(
                self.client,
                self.store,
                profile=self.profile,
                max_rows=self.max_rows,
                rng=self.rng,
            )

    def run_in_background(self) -> Optional[SyncResult]:
        """
        Sync unless one is already running. Errors are logged, not raised.
        """
        if not self._lock.acquire(blocking=False):
            logger.info("Sync already in progress, skipping background sync")
            return None
        try:
            return sync_grants(
                self.client,
                self.store,
                profile=self.profile,
                max_rows=self.max_rows,
                rng=self.rng,
            )
        except GrantBridgeError as e:
            logger.error(f"Background sync failed: {e.message}")
            return None
        finally:
            self._lock.release()
