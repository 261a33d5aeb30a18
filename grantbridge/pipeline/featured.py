"""
Selection of featured grants for the homepage.
"""

import logging
import random
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from grantbridge.core.domain_models import CachedGrant


logger = logging.getLogger(__name__)

FEATURED_SAMPLE_SIZE = 3


def sample_featured(
    grants: List[CachedGrant],
    k: int = FEATURED_SAMPLE_SIZE,
    rng: Optional[random.Random] = None,
) -> List[CachedGrant]:
    """Pick up to ``k`` grants at random, without replacement."""
    rng = rng or random
    return rng.sample(grants, min(k, len(grants)))


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_cache_stale(
    grants: List[CachedGrant],
    max_age: timedelta,
    now: Optional[datetime] = None,
) -> bool:
    """
    Whether the cached rows are older than ``max_age``.

    An empty cache is stale. Rows without timestamps count as fresh, leaving
    refreshes to the scheduled and manual syncs.
    """
    if not grants:
        return True

    timestamps = [
        _as_utc(grant.updated_at or grant.created_at)
        for grant in grants
        if grant.updated_at or grant.created_at
    ]
    if not timestamps:
        logger.info("No timestamp found, assuming cache is fresh")
        return False

    now = now or datetime.now(timezone.utc)
    age = now - max(timestamps)
    if age > max_age:
        logger.info(f"Cache is stale ({age.days} days old)")
        return True
    return False
