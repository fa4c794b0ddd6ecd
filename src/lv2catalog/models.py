"""
Catalog entries exposed to host applications.
"""

from dataclasses import dataclass, field
from typing import Optional

from rdflib import URIRef


@dataclass
class PluginClass:
    """
    A node of the plugin taxonomy.

    Attributes:
        uri: Class URI
        parent_uri: URI of the parent class (None for the root class)
        label: Human-readable class name

    Note:
        Only one parent is kept. A class declared with several parents
        keeps the first one the query returned.
    """

    uri: URIRef
    parent_uri: Optional[URIRef]
    label: str

    def get_uri(self) -> URIRef:
        return self.uri

    def get_parent_uri(self) -> Optional[URIRef]:
        return self.parent_uri

    def get_label(self) -> str:
        return self.label


@dataclass
class Plugin:
    """
    A cataloged plugin descriptor.

    Attributes:
        uri: Plugin URI
        bundle_uri: URI of the bundle the plugin was found in
        data_uris: Every metadata resource found for the plugin. Appended to
                   as query rows arrive, so it may contain duplicates.
        extension_uri: Dynamic manifest binary that described the plugin,
                       if any
    """

    uri: URIRef
    bundle_uri: URIRef
    data_uris: list[URIRef] = field(default_factory=list)
    extension_uri: Optional[URIRef] = None

    @property
    def is_dynamic(self) -> bool:
        """Check if the plugin was described by a dynamic manifest."""
        return self.extension_uri is not None

    def get_uri(self) -> URIRef:
        return self.uri

    def get_bundle_uri(self) -> URIRef:
        return self.bundle_uri

    def get_data_uris(self) -> list[URIRef]:
        return list(self.data_uris)
