"""
Vocabulary used by the catalog queries and bundle annotations.
"""

from rdflib import Namespace
from rdflib.namespace import RDF, RDFS

LV2 = Namespace("http://lv2plug.in/ns/lv2core#")
DYNMAN = Namespace("http://lv2plug.in/ns/ext/dynmanifest#")

# Predicate linking a plugin or specification to the bundle it was loaded from
BUNDLE_NS = Namespace("http://drobilla.net/ns/slv2#")
BUNDLE_URI = BUNDLE_NS.bundleURI

SPARQL_PREFIXES = (
    f"PREFIX lv2: <{LV2}>\n"
    f"PREFIX rdfs: <{RDFS}>\n"
    f"PREFIX dynman: <{DYNMAN}>\n"
    f"PREFIX bundle: <{BUNDLE_NS}>\n"
)

__all__ = [
    "BUNDLE_NS",
    "BUNDLE_URI",
    "DYNMAN",
    "LV2",
    "RDF",
    "RDFS",
    "SPARQL_PREFIXES",
]
