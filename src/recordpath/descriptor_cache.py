"""
Token-invalidated, thread-safe cache of per-shape descriptor sets.

Entries are keyed by (shape, pipeline version). When the pipeline's version
changes, lookups stop seeing entries built under the previous configuration;
sets already handed out are left as they were.

Locking is per key: a build for one shape never blocks lookups or builds for
another. Concurrent lookups of the same missing key wait for the first build
and receive its result. A failing build publishes nothing, so the next
caller builds again.
"""

import logging
import threading
from typing import Any, Dict, List, Tuple

from recordpath.descriptors import AttributeDescriptor, ShapeDescriptorSet
from recordpath.discovery import DiscoveryContext, DiscoveryPipeline
from recordpath.introspection import introspect_shape

logger = logging.getLogger(__name__)

CacheKey = Tuple[Any, int]


class DescriptorCache:
    """
    Memoizes ShapeDescriptorSet per (shape, pipeline version).

    Example:
        cache = DescriptorCache(DiscoveryPipeline([SuppressAttributes({'secret'})]))
        attrs = cache.get_attributes(Customer)
        attrs['name'].writable  # True
        'secret' in attrs       # False
    """

    def __init__(self, pipeline: DiscoveryPipeline):
        self._pipeline = pipeline
        self._entries: Dict[CacheKey, ShapeDescriptorSet] = {}
        self._intrinsic: Dict[Any, Tuple[AttributeDescriptor, ...]] = {}
        self._key_locks: Dict[CacheKey, threading.Lock] = {}
        # Guards the dicts above only; never held while building
        self._guard = threading.Lock()
        self._last_token = pipeline.version

    @property
    def pipeline(self) -> DiscoveryPipeline:
        return self._pipeline

    def get_attributes(self, shape: type) -> ShapeDescriptorSet:
        """
        Get the cached descriptor set for shape, building it on a miss.

        Args:
            shape: Structured record class

        Returns:
            Published, read-only ShapeDescriptorSet

        Raises:
            Whatever a discovery stage raises; nothing is cached in that case
        """
        if not isinstance(shape, type):
            raise TypeError(f"Shape must be a class, got {type(shape).__name__}")

        key = (shape, self._current_token())
        cached = self._entries.get(key)
        if cached is not None:
            return cached

        with self._lock_for(key):
            cached = self._entries.get(key)
            if cached is not None:
                return cached
            try:
                built = self._build(shape)
                with self._guard:
                    # Skip publishing if the pipeline changed mid-build
                    if key[1] == self._last_token:
                        self._entries[key] = built
            finally:
                with self._guard:
                    self._key_locks.pop(key, None)
            return built

    def intrinsic_attributes(self, shape: type) -> Tuple[AttributeDescriptor, ...]:
        """Attributes found by introspection alone, computed once per shape."""
        cached = self._intrinsic.get(shape)
        if cached is not None:
            return cached
        descriptors = tuple(introspect_shape(shape))
        with self._guard:
            return self._intrinsic.setdefault(shape, descriptors)

    def invalidate(self) -> None:
        """Drop every cached entry; already returned sets are unaffected."""
        with self._guard:
            self._entries.clear()
            self._intrinsic.clear()
        logger.debug("Descriptor cache invalidated")

    def __contains__(self, shape: Any) -> bool:
        return (shape, self._current_token()) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def _current_token(self) -> int:
        token = self._pipeline.version
        if token != self._last_token:
            with self._guard:
                if token != self._last_token:
                    self._entries.clear()
                    self._last_token = token
                    logger.debug(f"Pipeline changed (version {token}); cached descriptor sets dropped")
        return token

    def _lock_for(self, key: CacheKey) -> threading.Lock:
        with self._guard:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = self._key_locks[key] = threading.Lock()
            return lock

    def _build(self, shape: type) -> ShapeDescriptorSet:
        context = DiscoveryContext(shape, self.intrinsic_attributes(shape))
        self._pipeline.run(context)
        built = context.publish()
        logger.debug(f"Built descriptors for {shape.__name__}: {list(built)}")
        return built

    def snapshot(self) -> List[ShapeDescriptorSet]:
        """Currently cached sets, for diagnostics."""
        with self._guard:
            return list(self._entries.values())
