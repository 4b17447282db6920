"""Author memory used to tell first-time chatters from returning ones."""

from datetime import datetime, timedelta
from typing import Dict, Iterable

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_MEMORY_SECONDS = 6 * 60 * 60


class AuthorMemory:
    """
    Remembers when each author (case-insensitive) was last seen.

    Entries older than ``memory_seconds`` are pruned on every ``prune`` call.
    """

    def __init__(self, memory_seconds: float = DEFAULT_MEMORY_SECONDS) -> None:
        self.memory_seconds = memory_seconds
        self._last_seen: Dict[str, datetime] = {}

    @staticmethod
    def _key(author: str) -> str:
        return author.strip().lower()

    def has_seen(self, author: str) -> bool:
        return self._key(author) in self._last_seen

    def remember(self, authors: Iterable[str], timestamp: datetime) -> None:
        for author in authors:
            key = self._key(author)
            if key:
                self._last_seen[key] = timestamp

    def prune(self, now: datetime) -> int:
        """
        Forget authors not seen within the memory window.

        Returns:
            int: Number of authors forgotten.
        """
        cutoff = now - timedelta(seconds=self.memory_seconds)
        stale = [key for key, seen in self._last_seen.items() if seen < cutoff]
        for key in stale:
            del self._last_seen[key]
        if stale:
            logger.debug("author_memory_pruned", forgotten=len(stale), remaining=len(self._last_seen))
        return len(stale)

    def clear(self) -> None:
        self._last_seen.clear()

    def __len__(self) -> int:
        return len(self._last_seen)
