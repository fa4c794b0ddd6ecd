"""
Catalog indexing.

Once all bundles are loaded, three fixed queries pull specifications,
plugin classes and plugins out of the global graph. Specifications are
loaded for their data files; classes and plugins are folded into their
registries.
"""

import logging
from dataclasses import dataclass

from rdflib import Graph, Literal, URIRef
from rdflib.query import ResultRow

from lv2catalog.loader import ManifestLoader
from lv2catalog.models import Plugin, PluginClass
from lv2catalog.namespaces import SPARQL_PREFIXES
from lv2catalog.registry import Registry

logger = logging.getLogger(__name__)

SPECIFICATIONS_QUERY = SPARQL_PREFIXES + """
SELECT DISTINCT ?spec ?data WHERE {
    ?spec a lv2:Specification ;
          rdfs:seeAlso ?data .
}
"""

PLUGIN_CLASSES_QUERY = SPARQL_PREFIXES + """
SELECT DISTINCT ?class ?parent ?label WHERE {
    ?class a rdfs:Class ;
           rdfs:subClassOf ?parent ;
           rdfs:label ?label .
}
"""

PLUGINS_QUERY = SPARQL_PREFIXES + """
SELECT DISTINCT ?plugin ?data ?bundle WHERE {
    ?plugin a lv2:Plugin ;
            bundle:bundleURI ?bundle ;
            rdfs:seeAlso ?data .
}
"""


@dataclass
class IndexSummary:
    """
    Counts collected while indexing.

    Attributes:
        specifications_loaded: Specification data files parsed
        class_rows: Plugin class rows folded into the registry
        plugin_rows: Plugin rows folded into the registry
        dropped_rows: Rows ignored for missing or non-URI bindings
        fallback_sorts: Full re-sorts caused by out-of-order rows
    """

    specifications_loaded: int = 0
    class_rows: int = 0
    plugin_rows: int = 0
    dropped_rows: int = 0
    fallback_sorts: int = 0


class CatalogIndexer:
    """Builds the plugin class and plugin registries from the global graph."""

    def __init__(
        self,
        graph: Graph,
        loader: ManifestLoader,
        plugin_classes: Registry[PluginClass],
        plugins: Registry[Plugin],
    ) -> None:
        self.graph = graph
        self.loader = loader
        self.plugin_classes = plugin_classes
        self.plugins = plugins
        self.summary = IndexSummary()

    def _select(self, query: str) -> list[ResultRow]:
        # Materialize rows so the graph may be modified while handling them
        return list(self.graph.query(query))

    def run(self) -> IndexSummary:
        """
        Run the three catalog queries in order.

        Returns:
            IndexSummary with per-step counts
        """
        self.load_specifications()
        self.load_plugin_classes()
        self.load_plugins()
        self.summary.fallback_sorts = (
            self.plugin_classes.fallback_count + self.plugins.fallback_count
        )
        logger.info(
            f"Indexed {len(self.plugins)} plugin(s) and "
            f"{len(self.plugin_classes)} plugin class(es)"
        )
        return self.summary

    def load_specifications(self) -> None:
        """Load the data files of every specification into the graph."""
        for row in self._select(SPECIFICATIONS_QUERY):
            data = row["data"]
            if not isinstance(data, URIRef):
                self.summary.dropped_rows += 1
                continue
            if self.loader.load_file(data):
                self.summary.specifications_loaded += 1

    def load_plugin_classes(self) -> None:
        """Fold class/parent/label rows into the plugin class registry."""
        for row in self._select(PLUGIN_CLASSES_QUERY):
            class_uri = row["class"]
            parent_uri = row["parent"]
            label = row["label"]
            if not (
                isinstance(class_uri, URIRef)
                and isinstance(parent_uri, URIRef)
                and isinstance(label, Literal)
            ):
                logger.debug(f"Dropping incomplete class row for {class_uri!r}")
                self.summary.dropped_rows += 1
                continue

            # A repeated class keeps the parent it was first seen with
            self.plugin_classes.fold(
                str(class_uri),
                lambda: PluginClass(uri=class_uri, parent_uri=parent_uri, label=str(label)),
            )
            self.summary.class_rows += 1

    def load_plugins(self) -> None:
        """Fold plugin/data/bundle rows into the plugin registry."""
        for row in self._select(PLUGINS_QUERY):
            plugin_uri = row["plugin"]
            data_uri = row["data"]
            bundle_uri = row["bundle"]
            if not (
                isinstance(plugin_uri, URIRef)
                and isinstance(data_uri, URIRef)
                and isinstance(bundle_uri, URIRef)
            ):
                logger.debug(f"Dropping incomplete plugin row for {plugin_uri!r}")
                self.summary.dropped_rows += 1
                continue

            plugin = self.plugins.fold(
                str(plugin_uri),
                lambda: Plugin(uri=plugin_uri, bundle_uri=bundle_uri),
            )

            if data_uri in self.loader.extension_binaries:
                plugin.extension_uri = data_uri
            else:
                # Appended as-is; a resource may be listed more than once
                plugin.data_uris.append(data_uri)
            self.summary.plugin_rows += 1
