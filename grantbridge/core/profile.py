"""
User profile shapes and the helpers that convert between them.

Three shapes exist:

- the ``user_profiles`` row (snake_case columns),
- ``UserProfileData``, the richer stored profile the frontend edits (camelCase
  on the wire),
- ``LegacyProfile``, the flat shape the live search endpoint validates and the
  prompts embed.
"""

import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class UserProfileData(BaseModel):
    """Stored user profile. Every field is optional."""

    model_config = ConfigDict(populate_by_name=True)

    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    email: Optional[str] = None
    age: Optional[str] = None
    country: Optional[str] = None
    gender_identity: Optional[str] = Field(default=None, alias="genderIdentity")
    citizenship: Optional[str] = None
    school_status: Optional[str] = Field(default=None, alias="schoolStatus")
    degree_type: Optional[str] = Field(default=None, alias="degreeType")
    year_of_study: Optional[str] = Field(default=None, alias="yearOfStudy")
    field_of_study: Optional[str] = Field(default=None, alias="fieldOfStudy")
    gpa: Optional[str] = None
    income_bracket: Optional[str] = Field(default=None, alias="incomeBracket")
    ethnicity: Optional[str] = None
    identifiers: Optional[List[str]] = None
    financial_need: Optional[bool] = Field(default=None, alias="financialNeed")


class LegacyProfile(BaseModel):
    """
    Flat profile consumed by live search.

    Validation is strict: every field must already have its exact JSON type
    (no string-to-number coercion, booleans are not numbers).
    """

    model_config = ConfigDict(strict=True, populate_by_name=True)

    age: Union[int, float]
    country: str
    gender: str
    citizenship: str
    education: str
    degree_type: str = Field(alias="degreeType")
    year_of_study: str = Field(alias="yearOfStudy")
    field_of_study: str = Field(alias="fieldOfStudy")
    gpa: str
    income_bracket: str = Field(alias="incomeBracket")
    financial_need: bool = Field(alias="financialNeed")
    ethnicity: str
    identifiers: List[str] = Field(default_factory=list)


def profile_from_row(row: Mapping[str, Any]) -> UserProfileData:
    """Build a UserProfileData from a ``user_profiles`` row."""
    return UserProfileData.model_validate(dict(row))


def profile_to_row(profile: UserProfileData) -> Dict[str, Any]:
    """
    Convert a profile to ``user_profiles`` columns.

    Empty strings become None so they are stored as NULL.
    """
    row = profile.model_dump()
    return {key: (None if value == "" else value) for key, value in row.items()}


def _parse_age(age: Optional[str]) -> int:
    if not age:
        return 0
    match = _LEADING_INT.match(age)
    return int(match.group(1)) if match else 0


def to_legacy_profile(profile: UserProfileData) -> LegacyProfile:
    """Flatten a stored profile into the legacy search shape."""
    return LegacyProfile(
        age=_parse_age(profile.age),
        country=profile.country or "",
        gender=profile.gender_identity or "",
        citizenship=profile.citizenship or "",
        education=profile.school_status or "",
        degree_type=profile.degree_type or "",
        year_of_study=profile.year_of_study or "",
        field_of_study=profile.field_of_study or "",
        gpa=profile.gpa or "",
        income_bracket=profile.income_bracket or "",
        financial_need=bool(profile.financial_need),
        ethnicity=profile.ethnicity or "",
        identifiers=list(profile.identifiers or []),
    )


def _filled(value: Optional[str]) -> bool:
    return bool(value) and value.strip() != ""


def is_profile_complete_enough(profile: Optional[UserProfileData]) -> bool:
    """
    Check whether a profile can drive a dashboard search.

    Country, school status and field of study must all be non-blank.
    """
    if profile is None:
        logger.debug("Profile check: no profile found")
        return False

    checks = {
        "has_country": _filled(profile.country),
        "has_school_status": _filled(profile.school_status),
        "has_field_of_study": _filled(profile.field_of_study),
    }
    is_complete = all(checks.values())

    logger.debug(f"Profile check: {checks} complete={is_complete}")
    return is_complete
