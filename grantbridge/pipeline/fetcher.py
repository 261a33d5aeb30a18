"""
Fetching raw grant records from the completions API.
"""

import json
import logging
from typing import Any, Dict, List

from grantbridge.core.errors import ResponseParseError
from grantbridge.core.profile import LegacyProfile
from grantbridge.pipeline.prompts import (
    GRANTS_RESPONSE_FORMAT,
    LIVE_SEARCH_MODEL,
    MAX_TOKENS,
    SYNC_MODEL,
    TEMPERATURE,
    build_live_search_prompt,
    build_messages,
    build_sync_prompt,
)


logger = logging.getLogger(__name__)

RawGrantRecord = Dict[str, Any]

# Fixed demographic profile for the homepage cache
DEFAULT_PROFILE = LegacyProfile(
    age=20,
    country="United States",
    gender="Student",
    citizenship="Citizenship",
    education="Undergraduate",
    degree_type="Bachelor's",
    year_of_study="3rd Year",
    field_of_study="Computer Science",
    gpa="3.5",
    income_bracket="25k-50k",
    financial_need=True,
    ethnicity="Not specified",
    identifiers=["STEM"],
)


def parse_grants_reply(content: str) -> List[RawGrantRecord]:
    """
    Decode the reply content into raw grant records.

    Non-object array items are replaced by empty records so that every item
    still maps to exactly one grant.

    Raises:
        ResponseParseError: If the content is empty, not JSON or not an array
    """
    if not content or not content.strip():
        logger.error("Sonar returned empty response")
        raise ResponseParseError("Sonar API returned empty response. Please try again later.")

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse Sonar JSON: {e}. Raw content: {content[:200]}")
        raise ResponseParseError("Failed to parse grants data from Sonar.") from e

    if not isinstance(data, list):
        logger.error(f"Sonar response is not an array: {type(data).__name__}")
        raise ResponseParseError("Invalid grants data format from Sonar.")

    records = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            logger.warning(f"Skipping fields of non-object grant at index {index}")
            item = {}
        records.append(item)
    return records


def _request_grants(client, prompt: str, model: str) -> List[RawGrantRecord]:
    content = client.complete(
        build_messages(prompt),
        model=model,
        max_tokens=MAX_TOKENS,
        temperature=TEMPERATURE,
        response_format=GRANTS_RESPONSE_FORMAT,
    )
    return parse_grants_reply(content)


def fetch_grants(client, profile: LegacyProfile = DEFAULT_PROFILE) -> List[RawGrantRecord]:
    """
    Fetch grants for the cache sync.

    Args:
        client: Completions client exposing ``complete``
        profile: Demographic profile embedded in the prompt

    Returns:
        Raw grant records

    Raises:
        UpstreamError: If the API call fails
        ResponseParseError: If the reply is not a JSON array
    """
    logger.info("Fetching grants from Sonar API...")
    records = _request_grants(client, build_sync_prompt(profile), SYNC_MODEL)
    logger.info(f"Received {len(records)} grants from Sonar")
    return records


def search_grants(client, profile: LegacyProfile) -> List[RawGrantRecord]:
    """Fetch grants for a user's live search."""
    records = _request_grants(client, build_live_search_prompt(profile), LIVE_SEARCH_MODEL)
    logger.info(f"Live search returned {len(records)} grants")
    return records
