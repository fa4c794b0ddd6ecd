"""
The catalog world.

A World owns the global graph and both registries and runs the load
sequence: discover bundles along the search path, load each bundle, then
index the result. Loading happens once; afterwards the registries are
read-only.
"""

import logging
from typing import Callable, Iterable, Optional

from rdflib import Graph, URIRef

from lv2catalog.config import Settings, settings as default_settings
from lv2catalog.exceptions import WorldClosedError
from lv2catalog.extensions import ProviderFactory, open_provider
from lv2catalog.indexer import CatalogIndexer, IndexSummary
from lv2catalog.loader import BundleLoadResult, ManifestLoader
from lv2catalog.models import Plugin, PluginClass
from lv2catalog.namespaces import LV2
from lv2catalog.registry import Registry
from lv2catalog.scanner import discover_bundles, resolve_search_path, split_search_path
from lv2catalog.store import StoreCreation, create_store, release_store

logger = logging.getLogger(__name__)


class World:
    """
    Catalog of all plugins and plugin classes found on a search path.

    The World is single-threaded: loading and folding must not run
    concurrently.

    Example:
        >>> with World() as world:
        ...     world.load_all()
        ...     for plugin in world.get_all_plugins():
        ...         print(plugin.uri)
    """

    def __init__(
        self,
        graph: Optional[Graph] = None,
        config: Optional[Settings] = None,
        provider_factory: ProviderFactory = open_provider,
        authorize_extension: Optional[Callable[[URIRef], bool]] = None,
    ) -> None:
        """
        Create an empty world.

        Args:
            graph: Existing graph to load into. It stays owned by the caller
                   and is not closed by close().
            config: Settings (defaults to the global settings)
            provider_factory: Loads dynamic manifest binaries
            authorize_extension: Optional callback allowing or refusing each
                                 dynamic manifest binary
        """
        self.config = config or default_settings
        self.store_status: Optional[StoreCreation] = None
        self.graph: Optional[Graph] = None
        self.owns_graph = graph is None
        self._closed = False
        self._loaded = False

        try:
            if graph is None:
                self.store_status = create_store(
                    self.config.store_backend, self.config.fallback_store_backend
                )
                if self.store_status.degraded:
                    logger.warning(self.store_status.warning)
                self.graph = self.store_status.graph
            else:
                self.graph = graph

            self.plugin_classes: Registry[PluginClass] = Registry()
            self.plugins: Registry[Plugin] = Registry()
            self.plugin_class: Optional[PluginClass] = PluginClass(
                uri=LV2.Plugin, parent_uri=None, label="Plugin"
            )
            self.loader = ManifestLoader(
                self.graph,
                self.config,
                provider_factory=provider_factory,
                authorize_extension=authorize_extension,
            )
        except Exception:
            self._release()
            raise

    def __enter__(self) -> "World":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def _check_open(self) -> None:
        if self._closed:
            raise WorldClosedError("World has been closed")

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def loaded(self) -> bool:
        return self._loaded

    def load_bundle(self, bundle_uri: URIRef) -> BundleLoadResult:
        """
        Load a single bundle into the graph.

        Args:
            bundle_uri: Directory URI of the bundle

        Returns:
            BundleLoadResult for the bundle

        Raises:
            InvalidBundleError: If bundle_uri is not a URI
        """
        self._check_open()
        return self.loader.load_bundle(bundle_uri)

    def load_bundles(self, bundle_uris: Iterable[URIRef]) -> list[BundleLoadResult]:
        """Load several bundles in order."""
        return [self.load_bundle(bundle_uri) for bundle_uri in bundle_uris]

    def load_directory(self, directory: str) -> list[BundleLoadResult]:
        """
        Load every bundle found directly inside a directory.

        Args:
            directory: Search path directory

        Returns:
            Results for the bundles found (empty if unreadable)
        """
        return self.load_bundles(discover_bundles([directory]))

    def load_path(self, search_path: str) -> list[BundleLoadResult]:
        """
        Load every bundle along a colon-separated search path.

        Args:
            search_path: e.g. '/usr/lib/lv2:/opt/lv2'

        Returns:
            Results for all bundles found
        """
        return self.load_bundles(discover_bundles(split_search_path(search_path)))

    def load_all(self, search_path: Optional[str] = None) -> Optional[IndexSummary]:
        """
        Discover, load and index all bundles.

        The path is taken from the argument, then from LV2_PATH, then from
        the platform default (which is shell-expanded).

        Args:
            search_path: Optional explicit search path

        Returns:
            IndexSummary, or None if the world was already loaded
        """
        self._check_open()
        if self._loaded:
            logger.warning("World already loaded, ignoring load_all()")
            return None

        directories = resolve_search_path(
            search_path or self.config.lv2_path, self.config.default_lv2_path
        )
        logger.info(f"Loading bundles from {len(directories)} directory(ies)")

        results = self.load_bundles(discover_bundles(directories))
        skipped = sum(1 for result in results if not result.loaded)
        if skipped:
            logger.info(f"Skipped {skipped} of {len(results)} bundle(s)")

        summary = self._index()
        self._loaded = True
        return summary

    def _index(self) -> IndexSummary:
        """Build the registries from everything loaded so far, then seal them."""
        indexer = CatalogIndexer(self.graph, self.loader, self.plugin_classes, self.plugins)
        summary = indexer.run()
        self.plugin_classes.seal()
        self.plugins.seal()
        return summary

    def get_plugin_class(self) -> PluginClass:
        """Get the root plugin class (lv2:Plugin)."""
        self._check_open()
        return self.plugin_class

    def get_plugin_classes(self) -> Registry[PluginClass]:
        """Get all plugin classes, sorted by URI."""
        self._check_open()
        return self.plugin_classes

    def get_all_plugins(self) -> Registry[Plugin]:
        """Get all plugins, sorted by URI."""
        self._check_open()
        return self.plugins

    def get_plugins_by_filter(self, include: Callable[[Plugin], bool]) -> Registry[Plugin]:
        """
        Get the plugins accepted by a predicate.

        Args:
            include: Returns True for plugins to keep

        Returns:
            A new registry; the world's registry is unchanged
        """
        self._check_open()
        return self.plugins.filter(include)

    def _release(self) -> None:
        """Free registries, the cached root class, then the graph if owned."""
        plugins = getattr(self, "plugins", None)
        if plugins is not None:
            plugins.clear()
        plugin_classes = getattr(self, "plugin_classes", None)
        if plugin_classes is not None:
            plugin_classes.clear()
        self.plugin_class = None

        if self.graph is not None and self.owns_graph:
            release_store(self.graph)
        self.graph = None

    def close(self) -> None:
        """
        Release everything this world allocated.

        A graph passed in by the caller is left untouched.
        """
        if self._closed:
            return
        self._release()
        self._closed = True
        logger.debug("World closed")
