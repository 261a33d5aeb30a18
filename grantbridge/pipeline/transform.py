"""
Normalization of raw grant records.

Raw records are whatever the completions API produced: any field may be
missing, null, or of the wrong type. Both the cache sync and live search
normalize through ``normalize_fields`` so they apply the same defaults and
the same splitting grammars.
"""

import random
import re
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from grantbridge.core.domain_models import CachedGrant, LiveGrant
from grantbridge.core.money import parse_amount
from grantbridge.core.splitting import ELIGIBILITY, REQUIREMENTS, TAGS, split_items


SOURCE_TAG = "sonar"
MAX_ID_LENGTH = 100

DEFAULT_TITLE = "Untitled Grant"
DEFAULT_ORGANIZATION = "Unknown Organization"
DEFAULT_AMOUNT = "Varies"
DEFAULT_DEADLINE = "2026-12-31"
DEFAULT_ELIGIBILITY = "Eligibility not specified"
DEFAULT_DIFFICULTY = "Medium"

_WHITESPACE = re.compile(r"\s+")


def _text(value: Any, joiner: str = ", ") -> Optional[str]:
    """Coerce a raw field to text. Lists are joined, None stays None."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return joiner.join(str(item) for item in value if item is not None)
    return str(value)


def make_grant_id(organization: Optional[str], title: Optional[str]) -> str:
    """
    Slug of "organization-title", lower-cased with whitespace runs as hyphens.

    Truncated to 100 characters. Different grants can share an id.
    """
    def slug(value: Optional[str]) -> str:
        return _WHITESPACE.sub("-", (value or "").lower())

    return f"{slug(organization)}-{slug(title)}"[:MAX_ID_LENGTH]


def search_link(title: str) -> str:
    """Fallback link: a web search for the grant title."""
    return "https://www.google.com/search?q=" + quote(title, safe="!*'()")


def normalize_fields(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply defaults and splitting shared by every output shape.
    """
    title = _text(raw.get("title"))
    organization = _text(raw.get("organization"))
    eligibility = _text(raw.get("eligibility"), joiner="\n")

    return {
        "title": title or DEFAULT_TITLE,
        "organization": organization or DEFAULT_ORGANIZATION,
        "description": _text(raw.get("description")) or "",
        "link": _text(raw.get("link")) or search_link(title or ""),
        "amount": _text(raw.get("amount")) or DEFAULT_AMOUNT,
        "deadline": _text(raw.get("deadline")) or DEFAULT_DEADLINE,
        "tags": split_items(_text(raw.get("tags")), TAGS),
        "eligibility": split_items(eligibility, ELIGIBILITY) or [DEFAULT_ELIGIBILITY],
        "requirements": split_items(_text(raw.get("requirements"), joiner="\n"), REQUIREMENTS),
    }


def transform_grant(raw: Dict[str, Any], rng: Optional[random.Random] = None) -> CachedGrant:
    """Map one raw record to a cache row."""
    rng = rng or random
    fields = normalize_fields(raw)
    numeric, currency = parse_amount(fields["amount"])

    # Raw values feed the id so defaults do not leak into it
    return CachedGrant(
        id=make_grant_id(_text(raw.get("organization")), _text(raw.get("title"))),
        source=SOURCE_TAG,
        amount_numeric=numeric,
        currency=currency,
        popularity=rng.randint(0, 99),
        is_featured=True,
        **fields,
    )


def transform_grants(
    records: List[Dict[str, Any]],
    rng: Optional[random.Random] = None,
) -> List[CachedGrant]:
    """Map raw records to cache rows, one for one and in order."""
    return [transform_grant(raw, rng=rng) for raw in records]


def to_live_grants(records: List[Dict[str, Any]]) -> List[LiveGrant]:
    """
    Map raw records to the live search response shape.

    Ids are positional ("0", "1", ...) and therefore not stable across
    searches.
    """
    grants = []
    for index, raw in enumerate(records):
        fields = normalize_fields(raw)
        grants.append(LiveGrant(id=str(index), difficulty=DEFAULT_DIFFICULTY, **fields))
    return grants
