"""
Graph store construction.

The catalog keeps all metadata in rdflib graphs. The global graph and the
per-bundle scratch graphs are created here, preferring an indexed store and
falling back to a simpler one when the indexed store is unavailable. The
fallback is reported in the returned StoreCreation rather than through
process-wide state, so callers decide how to surface it.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from rdflib import Graph
from rdflib.plugin import PluginException

logger = logging.getLogger(__name__)


@dataclass
class StoreCreation:
    """
    Result of creating a graph store.

    Attributes:
        graph: The newly created graph
        backend: Name of the rdflib store plugin actually used
        degraded: True if the preferred backend was unavailable
        warning: Human-readable explanation when degraded
    """

    graph: Graph
    backend: str
    degraded: bool = False
    warning: Optional[str] = None


def create_store(backend: str, fallback: str) -> StoreCreation:
    """
    Create a graph, falling back to a simpler store if needed.

    Args:
        backend: Preferred rdflib store plugin name (e.g. 'Memory')
        fallback: Store plugin used when the preferred one cannot be created

    Returns:
        StoreCreation describing the graph and which backend was used

    Raises:
        PluginException: If neither store plugin is available
    """
    try:
        return StoreCreation(graph=Graph(store=backend), backend=backend)
    except PluginException as e:
        warning = (
            f"Unable to create '{backend}' graph store ({e}), "
            f"using '{fallback}' instead"
        )
        return StoreCreation(
            graph=Graph(store=fallback),
            backend=fallback,
            degraded=True,
            warning=warning,
        )


def release_store(graph: Graph) -> None:
    """Drop every triple held by a graph and close its store."""
    graph.remove((None, None, None))
    graph.close()


@contextmanager
def scratch_store(backend: str, fallback: str) -> Iterator[Graph]:
    """
    Provide a temporary graph that is released on every exit path.

    Args:
        backend: Preferred rdflib store plugin name
        fallback: Store plugin used when the preferred one cannot be created

    Yields:
        An empty graph
    """
    creation = create_store(backend, fallback)
    if creation.degraded:
        logger.debug(f"Scratch store degraded: {creation.warning}")
    try:
        yield creation.graph
    finally:
        release_store(creation.graph)
