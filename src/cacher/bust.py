"""Context-local bust state.

While a cache instance is busting, every read in the current execution
context recomputes and overwrites the entry instead of returning the cached
value. The flags live in a ContextVar keyed by the instance's ``cache_id``:
- Threads each start with their own flags
- asyncio tasks see a snapshot of the flags taken when they were created;
  changes made inside a task never leak back to its parent

The mapping is never mutated in place, so snapshots shared between contexts
stay independent.
"""

from __future__ import annotations

from collections.abc import Mapping
from contextvars import ContextVar
from types import MappingProxyType

_EMPTY: Mapping[str, bool] = MappingProxyType({})

_bust_flags: ContextVar[Mapping[str, bool]] = ContextVar("cacher_bust_flags", default=_EMPTY)


def is_busting(cache_id: str) -> bool:
    """Check whether ``cache_id`` is busting in the current context."""
    return _bust_flags.get().get(cache_id, False)


def set_busting(cache_id: str, busting: bool) -> None:
    """Set or clear the bust flag for ``cache_id`` in the current context."""
    flags = dict(_bust_flags.get())
    if busting:
        flags[cache_id] = True
    else:
        flags.pop(cache_id, None)
    _bust_flags.set(MappingProxyType(flags))


def busting_ids() -> frozenset[str]:
    """Instances busting in the current context."""
    return frozenset(_bust_flags.get())
