"""
Application assistant helpers.

Free-form answers, short requirement descriptions and grant explanations,
all generated by the completions API. Replies are expected to contain a JSON
object, but the model sometimes wraps it in prose, so the first object-like
block is extracted before decoding.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from grantbridge.storage.explanation_cache import ExplanationCache, requirements_key, title_key


logger = logging.getLogger(__name__)

NO_ANSWER = "No answer generated."
NO_DESCRIPTION = "Description not available."
FALLBACK_CRITERIA = "We're unable to extract selection criteria at this time."
FALLBACK_UNIQUE = "The explanation could not be retrieved. Please try refreshing."

# Descriptions: stop at the first closing brace. Explanations: span to the last.
_FIRST_OBJECT = re.compile(r"\{.*?\}", re.DOTALL)
_WHOLE_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


def extract_json_block(text: str, greedy: bool = False) -> Optional[str]:
    """Return the first ``{...}`` block in text, or None."""
    match = (_WHOLE_OBJECT if greedy else _FIRST_OBJECT).search(text or "")
    return match.group(0) if match else None


def answer_question(client, question: str) -> str:
    """Ask the completions API a free-form question."""
    answer = client.complete([{"role": "user", "content": question}])
    return answer or NO_ANSWER


def _descriptions_prompt(requirements: List[str]) -> str:
    numbered = "\n".join(f"{i + 1}. {r}" for i, r in enumerate(requirements))
    return f"""For each of the following grant application requirements, write a 5-8 words description (no longer than 10 words) that clearly explains what it is and how to fulfill it.

Return only helpful, concise descriptions. Avoid repeating the requirement title.

{numbered}

Respond in JSON format:
{{
  "descriptions": [
    "Description for requirement 1",
    "Description for requirement 2"
  ]
}}"""


def describe_requirements(
    client,
    requirements: List[str],
    cache: ExplanationCache,
    grant_title: Optional[str] = None,
) -> List[str]:
    """
    Short descriptions for each requirement.

    Falls back to a placeholder per requirement when the reply has no usable
    JSON. Decoded results and decode failures are cached; a reply with no
    JSON block at all is not.
    """
    key = requirements_key(requirements)
    cached = cache.get(key)
    if cached is not None:
        logger.info("Returning cached requirement descriptions")
        return cached

    logger.info(f"Generating requirement descriptions for: {grant_title or 'unknown grant'}")
    text = client.complete([{"role": "user", "content": _descriptions_prompt(requirements)}])
    fallback = [NO_DESCRIPTION for _ in requirements]

    block = extract_json_block(text)
    if block is None:
        logger.warning(f"No JSON block found in Sonar response: {text[:200]}")
        return fallback

    try:
        descriptions = json.loads(block).get("descriptions")
        if not isinstance(descriptions, list):
            raise ValueError("reply does not contain a 'descriptions' array")
        if not all(isinstance(d, str) for d in descriptions):
            raise ValueError("descriptions must all be strings")
    except (ValueError, AttributeError) as e:
        logger.error(f"JSON parsing error in Sonar response: {e}")
        cache.set(key, fallback)
        return fallback

    cache.set(key, descriptions)
    return descriptions


def _explanation_prompt(title: str, requirements: List[str]) -> str:
    return f"""You are a scholarship evaluator assistant. Based on the following information:

Title: {title}
Requirements: {"; ".join(requirements)}

Write two things:

1. Key Selection Criteria – output as a clean, human-readable bulleted list (3–5 items). Each bullet must highlight a core trait (e.g. GPA, leadership, diversity, community impact), followed by a short 1-line explanation. Use plain text bullets like "•".

2. What Makes This Grant Unique – a short paragraph explaining how this scholarship stands out from others, such as niche eligibility, unusual mission, holistic approach, or special values.

Respond in strict JSON format like:
{{
  "criteria": [
    "• Academic excellence: Demonstrated through GPA and coursework",
    "• Leadership: Evidence of leadership in school or community",
    "• Community impact: Involvement in service or outreach"
  ],
  "unique": "This grant supports students with a demonstrated history of resilience, especially those pursuing social impact careers."
}}"""


def _fallback_explanation() -> Dict[str, Any]:
    return {"criteria": [FALLBACK_CRITERIA], "unique": FALLBACK_UNIQUE}


def _bullets(text: str) -> List[str]:
    return [f"• {part.strip()}" for part in text.split("•") if part.strip()]


def explain_grant(
    client,
    title: str,
    requirements: List[str],
    cache: ExplanationCache,
) -> Dict[str, Any]:
    """
    Selection criteria and a uniqueness blurb for a grant.

    Returns:
        {"criteria": [str], "unique": str}
    """
    key = title_key(title)
    cached = cache.get(key)
    if cached is not None:
        logger.info(f"Returning cached grant explanation for: {title}")
        return cached

    logger.info(f"Generating grant explanation for: {title}")
    text = client.complete([{"role": "user", "content": _explanation_prompt(title, requirements)}])

    block = extract_json_block(text, greedy=True)
    if block is None:
        logger.warning(f"Sonar response missing JSON block. Raw content: {text[:200]}")
        return _fallback_explanation()

    try:
        parsed = json.loads(block)
        criteria = parsed.get("criteria", [])
        if isinstance(criteria, str):
            criteria = _bullets(criteria)
        elif not isinstance(criteria, list):
            raise ValueError("criteria is neither a list nor a string")
        explanation = {
            "criteria": [str(c) for c in criteria],
            "unique": str(parsed.get("unique") or ""),
        }
    except (ValueError, AttributeError) as e:
        logger.error(f"Sonar explanation JSON parse error: {e}")
        explanation = _fallback_explanation()

    cache.set(key, explanation)
    return explanation
