"""Custom exceptions for lv2catalog."""


class CatalogError(Exception):
    """Base exception for all catalog errors."""

    pass


class InvalidBundleError(CatalogError):
    """Raised when a bundle reference is not a URI."""

    def __init__(self, bundle: object):
        self.bundle = bundle
        super().__init__(f"Bundle reference is not a URI: {bundle!r}")


class ExtensionLoadError(CatalogError):
    """Raised when a dynamic manifest binary cannot be loaded or invoked."""

    def __init__(self, binary_uri: str, reason: str):
        self.binary_uri = binary_uri
        self.reason = reason
        super().__init__(f"Failed to load dynamic manifest {binary_uri}: {reason}")


class RegistrySealedError(CatalogError):
    """Raised when folding into a registry that has already been built."""

    pass


class WorldClosedError(CatalogError):
    """Raised when a closed World is used."""

    pass
