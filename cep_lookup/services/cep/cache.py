"""
Address cache for CEP lookups.

Keeps successfully resolved addresses in memory, keyed by the
normalized CEP. Lives outside the resolver: the API layer checks it
before resolving and fills it afterwards. Failures are never cached.
"""

import logging
import time
from collections import OrderedDict
from typing import Callable, Optional

from cep_lookup.services.cep.base import AddressRecord

logger = logging.getLogger(__name__)


class AddressCache:
    """
    In-process TTL cache of AddressRecords.

    Args:
        ttl_seconds: Entry lifetime; 0 disables the cache entirely
        max_entries: Capacity; the oldest entry is evicted when full
        clock: Time source in seconds (injectable for tests)
    """

    def __init__(
        self,
        ttl_seconds: int = 86400,
        max_entries: int = 5000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, tuple[float, AddressRecord]]" = OrderedDict()

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0 and self.max_entries > 0

    def get(self, cep: str) -> Optional[AddressRecord]:
        """Return the cached record, dropping it if it has expired."""
        entry = self._entries.get(cep)
        if entry is None:
            return None

        expires_at, record = entry
        if self._clock() >= expires_at:
            del self._entries[cep]
            return None
        return record

    def set(self, cep: str, record: AddressRecord) -> None:
        if not self.enabled:
            return

        self._entries.pop(cep, None)
        while len(self._entries) >= self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Cache: evicted {evicted}")

        self._entries[cep] = (self._clock() + self.ttl_seconds, record)

    def invalidate(self, cep: str) -> bool:
        return self._entries.pop(cep, None) is not None

    def clear(self) -> None:
        self._entries.clear()
        logger.debug("Cache: cleared")

    def __len__(self) -> int:
        return len(self._entries)
