#!/usr/bin/env python3
"""
tagmap/overrides.py - Layered merge of automated output and manual corrections

A LayeredEntries holds a base layer and an override layer keyed the same way.
Lookups consult the override layer first, so an override entry always wins a
key collision regardless of load order. Keys keep base-layer order, with
override-only keys appended in override order.
"""

from typing import Dict, Generic, Iterator, List, Optional, Tuple, TypeVar

V = TypeVar('V')


class LayeredEntries(Generic[V]):

    def __init__(self, base: Optional[Dict[str, V]] = None, override: Optional[Dict[str, V]] = None):
        self.base: Dict[str, V] = dict(base or {})
        self.override: Dict[str, V] = dict(override or {})

    def get(self, key: str) -> Optional[V]:
        if key in self.override:
            return self.override[key]
        return self.base.get(key)

    def keys(self) -> List[str]:
        ordered = list(self.base)
        ordered.extend(k for k in self.override if k not in self.base)
        return ordered

    def items(self) -> Iterator[Tuple[str, V]]:
        for key in self.keys():
            yield key, self.get(key)

    def is_overridden(self, key: str) -> bool:
        return key in self.override

    @property
    def overrides_applied(self) -> int:
        """Override keys that replaced a base entry"""
        return sum(1 for k in self.override if k in self.base)

    @property
    def overrides_added(self) -> int:
        """Override keys with no base entry"""
        return sum(1 for k in self.override if k not in self.base)

    def __len__(self) -> int:
        return len(self.base) + self.overrides_added

    def __contains__(self, key: str) -> bool:
        return key in self.override or key in self.base
