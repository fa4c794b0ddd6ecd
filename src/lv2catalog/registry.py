"""
Sorted, key-unique registries of catalog entries.

Registries are filled from query result streams. Rows for one entity
usually arrive together and the engine often returns entities in order,
so each row is folded in with cheap checks against the last and first
element; only a row that lands inside the current range needs a lookup,
and only a new key found there triggers a full re-sort.
"""

import logging
from bisect import bisect_left
from typing import Callable, Generic, Iterator, Optional, TypeVar

from rdflib import URIRef

from lv2catalog.exceptions import RegistrySealedError
from lv2catalog.models import Plugin, PluginClass

logger = logging.getLogger(__name__)

T = TypeVar("T", Plugin, PluginClass)


def uri_key(entry: Plugin | PluginClass) -> str:
    """Sort key of a catalog entry: its URI string."""
    return str(entry.uri)


class Registry(Generic[T]):
    """
    Ordered collection of catalog entries, strictly ascending by URI.

    Example:
        >>> registry = Registry()
        >>> uri = URIRef("http://example.org/delay")
        >>> cls = registry.fold(str(uri), lambda: PluginClass(uri, None, "Delay"))
        >>> registry.seal()
    """

    def __init__(self, entries: Optional[list[T]] = None) -> None:
        self._entries: list[T] = list(entries) if entries else []
        self._sealed = False
        self.fallback_count = 0

    def fold(self, key: str, create: Callable[[], T]) -> T:
        """
        Fold one query row into the registry.

        Args:
            key: URI string of the row's entity
            create: Factory for a new entry, called only if the key is new

        Returns:
            The entry for this key, either existing or newly inserted.
            The caller merges the row's attributes into it.

        Raises:
            RegistrySealedError: If the registry has been sealed

        Note:
            Not reentrant. The fallback re-sort reorders the underlying list.
        """
        if self._sealed:
            raise RegistrySealedError(f"Cannot add {key}: registry is sealed")

        # URIRef never compares equal to a plain str
        key = str(key)

        entries = self._entries
        if not entries:
            entry = create()
            entries.append(entry)
            return entry

        last_key = uri_key(entries[-1])
        if key == last_key:
            return entries[-1]

        if key > last_key:
            entry = create()
            entries.append(entry)
            return entry

        if key < uri_key(entries[0]):
            entry = create()
            entries.insert(0, entry)
            return entry

        existing = self._find(key)
        if existing is not None:
            return existing

        # Out-of-order row with a new key
        entry = create()
        entries.append(entry)
        entries.sort(key=uri_key)
        self.fallback_count += 1
        logger.debug(f"Unsorted input at {key}, re-sorted {len(entries)} entries")
        return entry

    def _find(self, key: str) -> Optional[T]:
        key = str(key)
        index = bisect_left(self._entries, key, key=uri_key)
        if index < len(self._entries) and uri_key(self._entries[index]) == key:
            return self._entries[index]
        return None

    def get_by_uri(self, uri: str | URIRef) -> Optional[T]:
        """
        Look up an entry by URI.

        Args:
            uri: Entry URI

        Returns:
            The entry, or None if not present
        """
        return self._find(str(uri))

    def filter(self, include: Callable[[T], bool]) -> "Registry[T]":
        """
        Select entries with a predicate.

        Args:
            include: Predicate deciding whether an entry is kept

        Returns:
            A new sealed registry; this registry is not modified
        """
        selected: "Registry[T]" = Registry([e for e in self._entries if include(e)])
        selected.seal()
        return selected

    def uris(self) -> list[URIRef]:
        """Get the URIs of all entries, in order."""
        return [entry.uri for entry in self._entries]

    def seal(self) -> None:
        """Make the registry read-only."""
        self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    def clear(self) -> None:
        """Drop all entries (used on teardown)."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[T]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> T:
        return self._entries[index]

    def __contains__(self, uri: object) -> bool:
        if isinstance(uri, (Plugin, PluginClass)):
            uri = uri.uri
        return isinstance(uri, str) and self._find(str(uri)) is not None

    def __repr__(self) -> str:
        return f"Registry({len(self._entries)} entries)"
