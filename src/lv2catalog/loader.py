"""
Bundle loading.

Each bundle's manifest is parsed into a scratch graph, optionally extended
with metadata generated by dynamic manifest binaries, annotated, and then
merged into the global graph. Nothing touches the global graph until the
manifest has been parsed successfully, so a broken bundle leaves no
partial state behind.
"""

import io
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional
from urllib.parse import urljoin

from rdflib import Graph, URIRef
from rdflib.exceptions import ParserError

from lv2catalog.config import Settings
from lv2catalog.exceptions import ExtensionLoadError, InvalidBundleError
from lv2catalog.extensions import ProviderFactory, open_provider, provider_session
from lv2catalog.namespaces import BUNDLE_URI, LV2, RDF, RDFS, SPARQL_PREFIXES
from lv2catalog.store import scratch_store

logger = logging.getLogger(__name__)

DYNAMIC_MANIFEST_QUERY = SPARQL_PREFIXES + """
SELECT DISTINCT ?dynman ?binary WHERE {
    ?dynman a dynman:DynManifest ;
            lv2:binary ?binary .
}
"""

# Errors raised by rdflib for missing or malformed resources
PARSE_ERRORS = (OSError, SyntaxError, ValueError, ParserError)


@dataclass
class BundleLoadResult:
    """
    Outcome of loading one bundle.

    Attributes:
        bundle_uri: The bundle that was loaded
        manifest_uri: Location of its manifest
        loaded: False if the manifest could not be read
        plugins: Plugins declared by the manifest (including generated ones)
        specifications: Specifications declared by the manifest
        extensions: Dynamic manifest binaries that contributed metadata
        triples: Number of manifest triples merged into the global graph
    """

    bundle_uri: URIRef
    manifest_uri: URIRef
    loaded: bool = False
    plugins: list[URIRef] = field(default_factory=list)
    specifications: list[URIRef] = field(default_factory=list)
    extensions: list[URIRef] = field(default_factory=list)
    triples: int = 0


class ManifestLoader:
    """
    Loads bundle manifests and standalone data files into a graph.

    Example:
        >>> loader = ManifestLoader(graph, Settings())
        >>> result = loader.load_bundle(URIRef("file:///usr/lib/lv2/amp.lv2/"))
        >>> result.plugins
    """

    def __init__(
        self,
        graph: Graph,
        config: Settings,
        provider_factory: ProviderFactory = open_provider,
        authorize_extension: Optional[Callable[[URIRef], bool]] = None,
    ) -> None:
        """
        Initialize the loader.

        Args:
            graph: Global graph receiving all loaded metadata
            config: Catalog settings
            provider_factory: Loads dynamic manifest binaries
            authorize_extension: Optional callback deciding whether a
                                 binary may be run; all are allowed if None
        """
        self.graph = graph
        self.config = config
        self.provider_factory = provider_factory
        self.authorize_extension = authorize_extension

        # Binaries that generated plugin metadata, used by the indexer to
        # tell generated data sources apart from data files
        self.extension_binaries: set[URIRef] = set()

    def manifest_uri_for(self, bundle_uri: URIRef) -> URIRef:
        """Get the manifest location of a bundle."""
        return URIRef(urljoin(str(bundle_uri), self.config.manifest_filename))

    def load_file(self, file_uri: URIRef) -> bool:
        """
        Parse a resource directly into the global graph.

        Args:
            file_uri: URI of the resource (also used as its base URI)

        Returns:
            True if the resource was parsed, False otherwise
        """
        try:
            self.graph.parse(
                source=str(file_uri),
                format=self.config.rdf_format,
                publicID=str(file_uri),
            )
        except PARSE_ERRORS as e:
            logger.warning(f"Failed to load {file_uri}: {e}")
            return False
        logger.debug(f"Loaded data file {file_uri}")
        return True

    def load_bundle(self, bundle_uri: URIRef) -> BundleLoadResult:
        """
        Load one bundle into the global graph.

        Args:
            bundle_uri: Directory URI of the bundle (with trailing slash)

        Returns:
            BundleLoadResult describing what was loaded

        Raises:
            InvalidBundleError: If bundle_uri is not a URI
        """
        if not isinstance(bundle_uri, URIRef):
            logger.error(f"Bundle reference is not a URI: {bundle_uri!r}")
            raise InvalidBundleError(bundle_uri)

        manifest_uri = self.manifest_uri_for(bundle_uri)
        result = BundleLoadResult(bundle_uri=bundle_uri, manifest_uri=manifest_uri)

        with scratch_store(
            self.config.store_backend, self.config.fallback_store_backend
        ) as manifest:
            try:
                manifest.parse(
                    source=str(manifest_uri),
                    format=self.config.rdf_format,
                    publicID=str(manifest_uri),
                )
            except PARSE_ERRORS as e:
                logger.warning(f"Skipping bundle {bundle_uri}: {e}")
                return result

            if self.config.dynamic_manifest_enabled:
                result.extensions = self._load_dynamic_manifests(manifest, bundle_uri)

            result.plugins = self._annotate(manifest, LV2.Plugin, manifest_uri, bundle_uri)
            result.specifications = self._annotate(
                manifest, LV2.Specification, manifest_uri, bundle_uri
            )

            result.triples = len(manifest)
            self.graph += manifest
            result.loaded = True

        logger.info(
            f"Loaded bundle {bundle_uri}: {len(result.plugins)} plugin(s), "
            f"{len(result.specifications)} specification(s)"
        )
        return result

    def _annotate(
        self,
        manifest: Graph,
        rdf_type: URIRef,
        manifest_uri: URIRef,
        bundle_uri: URIRef,
    ) -> list[URIRef]:
        """
        Link every entity of a type to its manifest and bundle.

        Adds exactly two triples per entity to the global graph.

        Returns:
            The annotated entities
        """
        subjects = list(manifest.subjects(RDF.type, rdf_type))
        for subject in subjects:
            self.graph.add((subject, RDFS.seeAlso, manifest_uri))
            self.graph.add((subject, BUNDLE_URI, bundle_uri))
        return subjects

    def _load_dynamic_manifests(
        self, manifest: Graph, bundle_uri: URIRef
    ) -> list[URIRef]:
        """
        Merge metadata generated by each declared dynamic manifest binary.

        A binary that cannot be loaded or run is skipped; the others and
        the bundle's static metadata are unaffected.

        Returns:
            Binaries that contributed metadata
        """
        binaries = []
        for row in list(manifest.query(DYNAMIC_MANIFEST_QUERY)):
            binary = row["binary"]
            if not isinstance(binary, URIRef):
                logger.debug(f"Ignoring non-URI dynamic manifest binary: {binary!r}")
                continue
            if binary not in binaries:
                binaries.append(binary)

        loaded: list[URIRef] = []
        for binary in binaries:
            if self.authorize_extension is not None and not self.authorize_extension(
                binary
            ):
                logger.info(f"Dynamic manifest {binary} not authorized, skipping")
                continue

            try:
                self._merge_dynamic_manifest(manifest, bundle_uri, binary)
            except ExtensionLoadError as e:
                logger.warning(f"Skipping dynamic manifest: {e}")
                continue
            except Exception as e:
                logger.warning(
                    f"Dynamic manifest {binary} failed in bundle {bundle_uri}: {e}"
                )
                continue

            loaded.append(binary)
            self.extension_binaries.add(binary)

        return loaded

    def _merge_dynamic_manifest(
        self, manifest: Graph, bundle_uri: URIRef, binary: URIRef
    ) -> None:
        provider = self.provider_factory(binary)

        buffer = io.StringIO()
        with provider_session(provider):
            provider.enumerate_subjects(buffer)

        with scratch_store(
            self.config.store_backend, self.config.fallback_store_backend
        ) as generated:
            generated.parse(
                data=buffer.getvalue(),
                format=self.config.rdf_format,
                publicID=str(bundle_uri),
            )

            for plugin in generated.subjects(RDF.type, LV2.Plugin):
                manifest.add((plugin, RDFS.seeAlso, binary))

            manifest += generated
            logger.debug(f"Merged {len(generated)} generated triple(s) from {binary}")
