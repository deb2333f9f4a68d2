import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Awaitable, Callable

from stepwright.settings import CacheSettings
from stepwright.timing import monotonic_seconds

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
	key: str
	value: str
	inserted_at: float
	accessed_at: float
	size: int


def entry_size(value: str) -> int:
	return len(value.encode('utf-8'))


class StructureCache:
	"""LRU + TTL cache of page-structure summaries keyed by URL.

	TTL is measured from insertion, not from the last hit, so a frequently
	read entry still goes stale. A single instance is shared by every
	execution in the process.
	"""

	def __init__(
		self,
		max_size: int = 100,
		ttl: float = 60.0,
		max_entry_size: int = 500 * 1024,
		clock: Callable[[], float] = monotonic_seconds,
	):
		self.max_size = max_size
		self.ttl = ttl
		self.max_entry_size = max_entry_size
		self._clock = clock
		self._entries: 'OrderedDict[str, CacheEntry]' = OrderedDict()

	@classmethod
	def from_settings(cls, settings: CacheSettings, clock: Callable[[], float] = monotonic_seconds) -> 'StructureCache':
		return cls(max_size=settings.max_size, ttl=settings.ttl_seconds, max_entry_size=settings.max_entry_size, clock=clock)

	def __len__(self) -> int:
		return len(self._entries)

	def _expired(self, entry: CacheEntry, now: float) -> bool:
		return now - entry.inserted_at > self.ttl

	def set(self, key: str, value: str) -> bool:
		"""Store ``value``; returns False when it was too large to keep."""
		size = entry_size(value)
		if size > self.max_entry_size:
			logger.warning(f'Structure for {key} is {size / 1024:.1f}KB, over the {self.max_entry_size / 1024:.0f}KB limit; not caching')
			return False

		now = self._clock()
		self._entries.pop(key, None)
		self._entries[key] = CacheEntry(key=key, value=value, inserted_at=now, accessed_at=now, size=size)

		while len(self._entries) > self.max_size:
			evicted, _ = self._entries.popitem(last=False)
			logger.debug(f'Evicted least recently used structure: {evicted}')
		return True

	def get(self, key: str) -> str | None:
		entry = self._entries.get(key)
		if entry is None:
			return None
		now = self._clock()
		if self._expired(entry, now):
			del self._entries[key]
			logger.debug(f'Structure for {key} expired')
			return None
		entry.accessed_at = now
		self._entries.move_to_end(key)
		return entry.value

	def has(self, key: str) -> bool:
		entry = self._entries.get(key)
		return entry is not None and not self._expired(entry, self._clock())

	def remove(self, key: str) -> bool:
		return self._entries.pop(key, None) is not None

	def clear(self) -> None:
		self._entries.clear()

	def cleanup_expired(self) -> int:
		now = self._clock()
		expired = [key for key, entry in self._entries.items() if self._expired(entry, now)]
		for key in expired:
			del self._entries[key]
		if expired:
			logger.debug(f'Removed {len(expired)} expired structure entries')
		return len(expired)

	def get_stats(self) -> dict:
		now = self._clock()
		ages = [now - e.inserted_at for e in self._entries.values()]
		return {
			'size': len(self._entries),
			'max_size': self.max_size,
			'total_bytes': sum(e.size for e in self._entries.values()),
			'oldest_entry_age': max(ages) if ages else None,
			'newest_entry_age': min(ages) if ages else None,
		}

	async def get_or_extract(self, key: str, extract: Callable[[], Awaitable[str]]) -> str:
		cached = self.get(key)
		if cached is not None:
			logger.debug(f'Structure cache hit for {key}')
			return cached
		value = await extract()
		self.set(key, value)
		return value
