"""
In-process cache for LLM-generated helper text.

Requirement descriptions and grant explanations are cached so repeated
requests get consistent answers without another API call. Entries live for
the lifetime of the process.
"""

import hashlib
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional


logger = logging.getLogger(__name__)


def requirements_key(requirements: Iterable[str]) -> str:
    """Order-insensitive key for a list of requirements."""
    return "||".join(sorted(str(r).strip().lower() for r in requirements))


def title_key(title: str) -> str:
    return title.strip().lower()


class ExplanationCache:
    """
    Cache of generated explanations.

    Features:
    - Hashed keys
    - Access tracking (count + last access time)
    """

    def __init__(self, name: str):
        self.name = name
        self._entries: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        logger.info(f"ExplanationCache initialized: {name}")

    def _hash_key(self, key: str) -> str:
        return hashlib.sha256(key.encode()).hexdigest()

    def get(self, key: str) -> Optional[Any]:
        """
        Get the cached value for a key.

        Returns:
            The cached value, or None if not cached
        """
        with self._lock:
            entry = self._entries.get(self._hash_key(key))
            if entry is None:
                return None
            entry["access_count"] += 1
            entry["accessed_at"] = datetime.now(timezone.utc)

        logger.info(f"Cache HIT [{self.name}] (accessed {entry['access_count']} times)")
        return entry["value"]

    def set(self, key: str, value: Any) -> None:
        now = datetime.now(timezone.utc)
        with self._lock:
            self._entries[self._hash_key(key)] = {
                "value": value,
                "created_at": now,
                "accessed_at": now,
                "access_count": 0,
            }
        logger.info(f"Cache SET [{self.name}]")

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def get_stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dict with cache stats
        """
        with self._lock:
            total = len(self._entries)
            total_accesses = sum(e["access_count"] for e in self._entries.values())

        return {
            "total_cached": total,
            "total_accesses": total_accesses,
            "avg_accesses": total_accesses / total if total else 0,
        }
