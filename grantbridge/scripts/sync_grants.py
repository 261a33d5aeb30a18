"""
Rebuild the grants cache from Sonar.

Meant to run from cron (the scheduled trigger), e.g. daily:

    0 6 * * * cd /srv/grantbridge && python -m grantbridge.scripts.sync_grants

Usage:
    python -m grantbridge.scripts.sync_grants [--init-schema] [--dry-run]
                                              [--profile PROFILE.json]

--profile takes a ``user_profiles`` row exported as JSON and syncs for that
profile instead of the default homepage profile.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from grantbridge.config import load_settings
from grantbridge.core.errors import GrantBridgeError
from grantbridge.core.profile import (
    is_profile_complete_enough,
    profile_from_row,
    to_legacy_profile,
)
from grantbridge.llm.client import SonarClient
from grantbridge.pipeline.fetcher import DEFAULT_PROFILE, fetch_grants
from grantbridge.pipeline.sync import MAX_CACHED_GRANTS, sync_grants
from grantbridge.pipeline.transform import transform_grants
from grantbridge.storage.cache_store import PostgresCacheStore


logger = logging.getLogger(__name__)


def load_profile(path: str):
    """Load a legacy profile from a ``user_profiles`` row JSON file."""
    row = json.loads(Path(path).read_text(encoding="utf-8"))
    profile = profile_from_row(row)
    if not is_profile_complete_enough(profile):
        raise GrantBridgeError(
            "Profile needs country, school_status and field_of_study", status_code=400
        )
    return to_legacy_profile(profile)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Rebuild the GrantBridge grants cache")
    parser.add_argument("--init-schema", action="store_true", help="Create the cache table and view first")
    parser.add_argument("--dry-run", action="store_true", help="Fetch and print grants without writing")
    parser.add_argument("--profile", help="Path to a user_profiles row exported as JSON")
    args = parser.parse_args(argv)

    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    client = SonarClient(
        api_key=settings.sonar_api_key,
        base_url=settings.sonar_base_url,
        timeout=settings.sonar_timeout,
    )
    store = PostgresCacheStore(database_url=settings.database_url)

    try:
        profile = load_profile(args.profile) if args.profile else DEFAULT_PROFILE

        if args.dry_run:
            grants = transform_grants(fetch_grants(client, profile))[:MAX_CACHED_GRANTS]
            for grant in grants:
                print(f"{grant.id}  {grant.amount}  {grant.deadline}  {grant.title}")
            logger.info(f"Dry run: {len(grants)} grants would be cached")
            return 0

        if args.init_schema:
            store.init_schema()

        result = sync_grants(client, store, profile=profile)
        logger.info(
            f"✓ Cached {result.stored}/{result.fetched} grants "
            f"(view refreshed: {result.view_refreshed})"
        )
        return 0

    except GrantBridgeError as e:
        logger.error(f"✗ Sync failed: {e.message}")
        return 1
    except (OSError, ValueError) as e:
        logger.error(f"✗ Could not load profile: {e}")
        return 1
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
