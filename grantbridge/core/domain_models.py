"""
Grant records produced by the pipeline.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class CachedGrant(BaseModel):
    """
    A normalized grant as stored in the ``grants_cache`` table.

    ``id`` is a slug of organization and title. It is not guaranteed to be
    unique. Timestamps are assigned by the database.
    """

    id: str
    source: str = "sonar"
    title: str
    organization: str
    description: str = ""
    link: str
    amount: str
    amount_numeric: int = 0
    currency: str = "USD"
    deadline: str
    tags: List[str] = Field(default_factory=list)
    eligibility: List[str] = Field(default_factory=list)
    requirements: List[str] = Field(default_factory=list)
    popularity: int = 0
    is_featured: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LiveGrant(BaseModel):
    """
    A grant returned by live search.

    ``id`` is the position in the reply, so it repeats across searches.
    """

    id: str
    title: str
    organization: str
    amount: str
    deadline: str
    link: str
    eligibility: List[str]
    requirements: List[str]
    description: str
    tags: List[str]
    difficulty: Literal["Easy", "Medium", "Hard"] = "Medium"
