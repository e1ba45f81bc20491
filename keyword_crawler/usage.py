"""
Usage Gate
==========
Per-owner keyword-check allowance, consulted before a crawl starts.

``reserve`` checks the allowance and records the use in one locked step,
so two simultaneous requests from one owner cannot both slip past the
limit.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

from .exceptions import LimitExceededError

logger = logging.getLogger(__name__)

UNLIMITED = -1


@dataclass
class UsageStatus:
    used: int
    limit: int

    @property
    def unlimited(self) -> bool:
        return self.limit == UNLIMITED

    @property
    def remaining(self) -> int:
        if self.unlimited:
            return UNLIMITED
        return max(0, self.limit - self.used)

    @property
    def exhausted(self) -> bool:
        return not self.unlimited and self.used >= self.limit

    def to_dict(self) -> dict:
        return {
            'used': self.used,
            'limit': self.limit,
            'remaining': self.remaining,
        }


class UsageTracker(ABC):
    """Accounting collaborator behind the crawl endpoint."""

    @abstractmethod
    def reserve(self, owner_id: str) -> UsageStatus:
        """
        Record one keyword check for ``owner_id``.

        Raises:
            LimitExceededError: the allowance is used up (nothing is recorded)
        """
        ...

    @abstractmethod
    def get_usage(self, owner_id: str) -> UsageStatus:
        ...

    @abstractmethod
    def release(self, owner_id: str) -> UsageStatus:
        """Give back a reservation whose keyword check did not complete."""
        ...


class InMemoryUsageTracker(UsageTracker):
    """Counts held in memory; per-owner limits override the default plan."""

    def __init__(self, default_limit: int = 10, limits: Optional[Dict[str, int]] = None):
        self.default_limit = default_limit
        self._limits: Dict[str, int] = dict(limits or {})
        self._used: Dict[str, int] = {}
        self._lock = threading.Lock()

    def set_limit(self, owner_id: str, limit: int) -> None:
        with self._lock:
            self._limits[owner_id] = limit

    def _status(self, owner_id: str) -> UsageStatus:
        return UsageStatus(
            used=self._used.get(owner_id, 0),
            limit=self._limits.get(owner_id, self.default_limit),
        )

    def get_usage(self, owner_id: str) -> UsageStatus:
        with self._lock:
            return self._status(owner_id)

    def reserve(self, owner_id: str) -> UsageStatus:
        with self._lock:
            status = self._status(owner_id)
            if status.exhausted:
                logger.info(f"[USAGE] {owner_id} reached keyword check limit ({status.used}/{status.limit})")
                raise LimitExceededError(
                    "Keyword check limit reached for your plan. Please upgrade to continue.",
                    usage=status.to_dict(),
                )
            self._used[owner_id] = status.used + 1
            return self._status(owner_id)

    def release(self, owner_id: str) -> UsageStatus:
        with self._lock:
            used = self._used.get(owner_id, 0)
            if used > 0:
                self._used[owner_id] = used - 1
            return self._status(owner_id)
