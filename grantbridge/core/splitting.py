"""
Splitting of delimited free text into lists of items.

The completions API returns eligibility, requirements and tags as single
strings. Every caller splits them through ``split_items`` with one of the
named grammars below, so the delimiter rules live in one place.

The grammars intentionally differ. For "Essay; 500-1000 words, Transcript":

    REQUIREMENTS            -> ["Essay", "500-1000 words, Transcript"]
    ASSISTANT_REQUIREMENTS  -> ["Essay", "500-1000 words", "Transcript"]
    CARD_REQUIREMENTS       -> ["Essay; 500-1000 words", "Transcript"]

None of them splits inside a hyphenated numeric range.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Pattern


@dataclass(frozen=True)
class DelimiterGrammar:
    """A named delimiter pattern."""

    name: str
    pattern: str
    flags: int = 0
    regex: Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "regex", re.compile(self.pattern, self.flags))


# Bullets and line breaks
ELIGIBILITY = DelimiterGrammar("eligibility", r"[•\n]")

# Bullets, line breaks and semicolons; commas stay inside an item
REQUIREMENTS = DelimiterGrammar(
    "requirements", r"(?<!\band\b)(?:•|\n|;)", re.IGNORECASE
)

TAGS = DelimiterGrammar("tags", r",")

# Application assistant flattens requirements on both separators
ASSISTANT_REQUIREMENTS = DelimiterGrammar("assistant_requirements", r"[;,]")

# Grant card splits on commas and the word "and"
CARD_REQUIREMENTS = DelimiterGrammar("card_requirements", r",| and ", re.IGNORECASE)

GRAMMARS = {
    grammar.name: grammar
    for grammar in (
        ELIGIBILITY,
        REQUIREMENTS,
        TAGS,
        ASSISTANT_REQUIREMENTS,
        CARD_REQUIREMENTS,
    )
}

_LEADING_BULLET = re.compile(r"^[-–•*]\s*")


def split_items(text: Optional[str], grammar: DelimiterGrammar) -> List[str]:
    """
    Split text with a grammar into trimmed, non-empty items.

    Args:
        text: Delimited text (None or empty yields [])
        grammar: Delimiter grammar to apply

    Returns:
        List of items in source order
    """
    if not text:
        return []
    items = (part.strip() for part in grammar.regex.split(text))
    return [item for item in items if item]


def split_all(texts: Iterable[str], grammar: DelimiterGrammar) -> List[str]:
    """Split every text and flatten the results."""
    return [item for text in texts for item in split_items(text, grammar)]


def card_items(texts: Iterable[str]) -> List[str]:
    """Requirement bullets as the grant card displays them."""
    items = []
    for item in split_all(texts, CARD_REQUIREMENTS):
        item = _LEADING_BULLET.sub("", item)
        item = item[:1].upper() + item[1:]
        if item:
            items.append(item)
    return items
