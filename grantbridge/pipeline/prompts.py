"""
Prompts and request parameters for grant listing requests.

The cache sync and live search ask for the same record shape but differ in
model and time window.
"""

from typing import Any, Dict, List

from grantbridge.core.profile import LegacyProfile


SYSTEM_PROMPT = (
    "You are a scholarship recommendation engine. "
    "Always respond strictly in JSON array format."
)

SYNC_MODEL = "sonar"
LIVE_SEARCH_MODEL = "sonar-pro"
MAX_TOKENS = 2000
TEMPERATURE = 0.2

GRANT_FIELDS = (
    "title",
    "description",
    "amount",
    "deadline",
    "eligibility",
    "organization",
    "requirements",
    "tags",
    "link",
)

GRANTS_RESPONSE_FORMAT: Dict[str, Any] = {
    "type": "json_schema",
    "json_schema": {
        "schema": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {name: {"type": "string"} for name in GRANT_FIELDS},
                "required": ["title", "organization", "amount"],
            },
        },
    },
}

_EXAMPLE_RECORD = "[{" + ",".join(f'"{name}":""' for name in GRANT_FIELDS) + "}]"


def _format_age(age) -> str:
    if isinstance(age, float) and age.is_integer():
        return str(int(age))
    return str(age)


def _profile_block(profile: LegacyProfile) -> str:
    need = "financial need" if profile.financial_need else "not financial need"
    return "\n".join([
        f"* a {_format_age(profile.age)}-year-old",
        f"* {', '.join(profile.identifiers)} {profile.gender}",
        f"* studying {profile.education} ({profile.degree_type}) in {profile.country}",
        f"* Year of Study: {profile.year_of_study}",
        f"* Field of Study: {profile.field_of_study}",
        f"* GPA: {profile.gpa}",
        f"* Household Income: {profile.income_bracket} ({need})",
        f"* Ethnicity: {profile.ethnicity}",
        f"* Citizenship: {profile.citizenship}",
    ])


def _build_prompt(profile: LegacyProfile, window: str) -> str:
    return f"""List as many {window} as possible for:
{_profile_block(profile)}

Provide for each grant:
* Title
* Full Description
* Amount (USD if possible, else "Varies")
* Deadline (specific date in YYYY-MM-DD format)
* Eligibility (bullet points)
* Organization
* Requirements
* Tags (e.g., STEM, Women, First-Gen)
* Link (to official grant website or application page)

Respond ONLY in JSON array format like:
{_EXAMPLE_RECORD}"""


def build_sync_prompt(profile: LegacyProfile) -> str:
    """Prompt used by the cache sync job."""
    return _build_prompt(
        profile,
        "recent and upcoming scholarships or grants (from the current and next few years)",
    )


def build_live_search_prompt(profile: LegacyProfile) -> str:
    """Prompt used by personalised live search."""
    return _build_prompt(
        profile,
        "scholarships or grants (open now or opening within the current year "
        "and the next 3 years)",
    )


def build_messages(prompt: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]
