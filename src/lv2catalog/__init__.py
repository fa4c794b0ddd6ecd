"""
lv2catalog - catalog of LV2 plugins and plugin classes.

Discovers plugin bundles along a search path, loads their RDF metadata
into a shared graph and exposes sorted registries of plugins and plugin
classes.
"""

from lv2catalog.config import Settings
from lv2catalog.exceptions import (
    CatalogError,
    ExtensionLoadError,
    InvalidBundleError,
    RegistrySealedError,
    WorldClosedError,
)
from lv2catalog.extensions import ExtensionProvider, open_provider
from lv2catalog.indexer import IndexSummary
from lv2catalog.loader import BundleLoadResult, ManifestLoader
from lv2catalog.models import Plugin, PluginClass
from lv2catalog.registry import Registry
from lv2catalog.world import World

__version__ = "0.1.0"

__all__ = [
    "BundleLoadResult",
    "CatalogError",
    "ExtensionLoadError",
    "ExtensionProvider",
    "IndexSummary",
    "InvalidBundleError",
    "ManifestLoader",
    "Plugin",
    "PluginClass",
    "Registry",
    "RegistrySealedError",
    "Settings",
    "World",
    "WorldClosedError",
    "open_provider",
]
