# services/access_cache.py
"""
Bounded read cache in front of the authorization engine.

Entries are keyed by (user_id, property_id) and hold the grant snapshot the
engine last read for that pair. Only the engine reads from it; the grant store
invalidates a pair whenever it writes it, and again after the writing session
commits. Readers take a read token before going to the database; a put whose
pair was invalidated after that token was taken is dropped, so a snapshot read
before a concurrent commit never lands in the cache.
"""
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from sqlalchemy import event
from sqlalchemy.orm import Session

from config import ACCESS_CACHE_MAX_ENTRIES, ACCESS_CACHE_TTL_SECONDS
from models.property_grant import Role

Key = Tuple[int, int]

_MISSING = object()
_SESSION_KEYS = "access_cache_pending_keys"


@dataclass(frozen=True)
class GrantSnapshot:
     """The parts of an ACTIVE grant the engine needs to answer a check."""
     role: Role
     permissions: Dict[str, bool] = field(default_factory=dict)


class AccessCache:

     def __init__(self, max_entries: int = ACCESS_CACHE_MAX_ENTRIES, ttl_seconds: float = ACCESS_CACHE_TTL_SECONDS, clock=time.monotonic):
          self.max_entries = max_entries
          self.ttl_seconds = ttl_seconds
          self._clock = clock
          self._entries: "OrderedDict[Key, Tuple[float, Optional[GrantSnapshot]]]" = OrderedDict()
          # Last invalidation tick per pair; bounded, with anything pruned
          # treated as invalidated at _pruned_through
          self._invalidated: "OrderedDict[Key, int]" = OrderedDict()
          self._tick = 0
          self._pruned_through = 0
          self._lock = threading.Lock()

     @property
     def enabled(self) -> bool:
          return self.ttl_seconds > 0 and self.max_entries > 0

     def get(self, user_id: int, property_id: int):
          """Return the cached snapshot (None = cached miss), or _MISSING."""
          if not self.enabled:
               return _MISSING
          key = (user_id, property_id)
          with self._lock:
               entry = self._entries.get(key)
               if entry is None:
                    return _MISSING
               stored_at, snapshot = entry
               if self._clock() - stored_at > self.ttl_seconds:
                    del self._entries[key]
                    return _MISSING
               self._entries.move_to_end(key)
               return snapshot

     def begin_read(self) -> int:
          """Token to hand back to put() once the database read is done."""
          with self._lock:
               return self._tick

     def put(self, user_id: int, property_id: int, snapshot: Optional[GrantSnapshot], read_token: Optional[int] = None) -> None:
          if not self.enabled:
               return
          key = (user_id, property_id)
          with self._lock:
               if read_token is not None and self._invalidated.get(key, self._pruned_through) > read_token:
                    return
               self._entries[key] = (self._clock(), snapshot)
               self._entries.move_to_end(key)
               while len(self._entries) > self.max_entries:
                    self._entries.popitem(last=False)

     def invalidate(self, user_id: int, property_id: int) -> None:
          key = (user_id, property_id)
          with self._lock:
               self._entries.pop(key, None)
               self._tick += 1
               self._invalidated[key] = self._tick
               self._invalidated.move_to_end(key)
               while len(self._invalidated) > max(self.max_entries, 1):
                    _, tick = self._invalidated.popitem(last=False)
                    self._pruned_through = max(self._pruned_through, tick)

     def invalidate_property(self, property_id: int) -> None:
          with self._lock:
               for key in [k for k in self._entries if k[1] == property_id]:
                    del self._entries[key]
               self._bump_all()

     def clear(self) -> None:
          with self._lock:
               self._entries.clear()
               self._bump_all()

     def _bump_all(self) -> None:
          # Every read in flight loses its put
          self._tick += 1
          self._invalidated.clear()
          self._pruned_through = self._tick

     def __len__(self) -> int:
          return len(self._entries)

     def track_write(self, db: Session, user_id: int, property_id: int) -> None:
          """Invalidate now and remember the pair for the after-commit pass."""
          self.invalidate(user_id, property_id)
          db.info.setdefault(_SESSION_KEYS, []).append((self, user_id, property_id))


def is_missing(value) -> bool:
     return value is _MISSING


@event.listens_for(Session, "after_commit")
def _invalidate_committed_writes(session: Session) -> None:
     for cache, user_id, property_id in session.info.pop(_SESSION_KEYS, []):
          cache.invalidate(user_id, property_id)


@event.listens_for(Session, "after_rollback")
def _forget_rolled_back_writes(session: Session) -> None:
     for cache, user_id, property_id in session.info.pop(_SESSION_KEYS, []):
          cache.invalidate(user_id, property_id)


# Process-wide cache shared by request-scoped engines
access_cache = AccessCache()
