"""
Dynamic manifest providers.

A bundle may declare a binary that generates part of its manifest at load
time instead of shipping it as static Turtle. Each binary is wrapped in a
provider with an explicit lifecycle:

    acquire() -> enumerate_subjects(stream) -> release()

Two kinds of binaries are supported:
1. Native shared libraries exposing the LV2 dynamic manifest C entry points
2. Python modules exposing functions with the same names

Loading a provider runs third-party code in this process. Hosts that need
to restrict this can pass an authorization callback to the loader or
disable dynamic manifests in the settings.
"""

import ctypes
import ctypes.util
import hashlib
import importlib.util
import logging
import os
import tempfile
from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path
from types import ModuleType
from typing import Any, Callable, Iterator, Optional, Protocol, TextIO
from urllib.parse import urlparse
from urllib.request import url2pathname

from rdflib import URIRef

from lv2catalog.exceptions import ExtensionLoadError

logger = logging.getLogger(__name__)

OPEN_SYMBOL = "lv2_dyn_manifest_open"
GET_SUBJECTS_SYMBOL = "lv2_dyn_manifest_get_subjects"
CLOSE_SYMBOL = "lv2_dyn_manifest_close"

PYTHON_SUFFIXES = (".py",)


class ExtensionProvider(Protocol):
    """
    Protocol for dynamic manifest providers.

    Providers are created by a factory that loads the binary; a provider
    that exists is loaded and ready to be acquired.
    """

    binary_uri: URIRef

    def acquire(self) -> None:
        """
        Open the dynamic manifest.

        Raises:
            ExtensionLoadError: If the binary refuses to open
        """
        ...

    def enumerate_subjects(self, stream: TextIO) -> None:
        """
        Write the generated manifest data as Turtle.

        Args:
            stream: Text buffer receiving the serialized metadata

        Raises:
            ExtensionLoadError: If the binary fails to produce its subjects
        """
        ...

    def release(self) -> None:
        """Close the dynamic manifest. Must be safe to call once after acquire."""
        ...


ProviderFactory = Callable[[URIRef], ExtensionProvider]


def binary_path(binary_uri: URIRef) -> Path:
    """
    Convert a binary's file URI into a local path.

    Args:
        binary_uri: URI declared as lv2:binary

    Returns:
        Local filesystem path

    Raises:
        ExtensionLoadError: If the URI does not name a local file
    """
    parsed = urlparse(str(binary_uri))
    if parsed.scheme != "file":
        raise ExtensionLoadError(binary_uri, "not a file URI")
    if parsed.netloc not in ("", "localhost"):
        raise ExtensionLoadError(binary_uri, f"remote host {parsed.netloc!r}")
    return Path(url2pathname(parsed.path))


class PythonModuleProvider:
    """
    Provider backed by a Python module file.

    The module must define lv2_dyn_manifest_get_subjects(handle, stream)
    and may define lv2_dyn_manifest_open(features) -> handle and
    lv2_dyn_manifest_close(handle). get_subjects returns 0 or None on
    success.
    """

    def __init__(self, binary_uri: URIRef, path: Path) -> None:
        self.binary_uri = binary_uri
        self.path = path
        self._module = self._load_module()

        get_subjects = getattr(self._module, GET_SUBJECTS_SYMBOL, None)
        if not callable(get_subjects):
            raise ExtensionLoadError(binary_uri, f"missing {GET_SUBJECTS_SYMBOL}()")
        self._get_subjects = get_subjects
        self._handle: Any = None

    def _load_module(self) -> ModuleType:
        digest = hashlib.sha256(str(self.path).encode("utf-8")).hexdigest()[:12]
        module_name = f"lv2catalog_dynmanifest_{digest}"
        spec = importlib.util.spec_from_file_location(module_name, str(self.path))
        if spec is None or spec.loader is None:
            raise ExtensionLoadError(self.binary_uri, "cannot create module spec")

        module = importlib.util.module_from_spec(spec)
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            raise ExtensionLoadError(self.binary_uri, f"import failed: {e}") from e
        return module

    def acquire(self) -> None:
        open_func = getattr(self._module, OPEN_SYMBOL, None)
        if not callable(open_func):
            return
        try:
            self._handle = open_func(())
        except Exception as e:
            raise ExtensionLoadError(self.binary_uri, f"open failed: {e}") from e

    def enumerate_subjects(self, stream: TextIO) -> None:
        try:
            status = self._get_subjects(self._handle, stream)
        except Exception as e:
            raise ExtensionLoadError(self.binary_uri, f"get_subjects failed: {e}") from e
        if status not in (None, 0):
            raise ExtensionLoadError(self.binary_uri, f"get_subjects returned {status}")

    def release(self) -> None:
        close_func = getattr(self._module, CLOSE_SYMBOL, None)
        if callable(close_func):
            close_func(self._handle)
        self._handle = None


@lru_cache(maxsize=1)
def _libc() -> ctypes.CDLL:
    """Load the C library used to hand FILE* streams to native binaries."""
    libc = ctypes.CDLL(ctypes.util.find_library("c"))
    libc.fopen.argtypes = [ctypes.c_char_p, ctypes.c_char_p]
    libc.fopen.restype = ctypes.c_void_p
    libc.fclose.argtypes = [ctypes.c_void_p]
    libc.fclose.restype = ctypes.c_int
    return libc


class SharedLibraryProvider:
    """
    Provider backed by a native shared library.

    The library must export lv2_dyn_manifest_get_subjects(handle, FILE*);
    lv2_dyn_manifest_open(handle*, features) and
    lv2_dyn_manifest_close(handle) are optional. Both open and get_subjects
    return 0 on success.
    """

    def __init__(self, binary_uri: URIRef, path: Path) -> None:
        self.binary_uri = binary_uri
        self.path = path
        try:
            self._lib = ctypes.CDLL(str(path))
        except OSError as e:
            raise ExtensionLoadError(binary_uri, str(e)) from e

        self._get_subjects = self._symbol(GET_SUBJECTS_SYMBOL)
        if self._get_subjects is None:
            raise ExtensionLoadError(binary_uri, f"missing {GET_SUBJECTS_SYMBOL}")
        self._get_subjects.argtypes = [ctypes.c_void_p, ctypes.c_void_p]
        self._get_subjects.restype = ctypes.c_int

        self._open = self._symbol(OPEN_SYMBOL)
        if self._open is not None:
            self._open.argtypes = [ctypes.POINTER(ctypes.c_void_p), ctypes.c_void_p]
            self._open.restype = ctypes.c_int

        self._close = self._symbol(CLOSE_SYMBOL)
        if self._close is not None:
            self._close.argtypes = [ctypes.c_void_p]
            self._close.restype = None

        self._handle = ctypes.c_void_p()

    def _symbol(self, name: str) -> Optional[Any]:
        try:
            return getattr(self._lib, name)
        except AttributeError:
            return None

    def acquire(self) -> None:
        if self._open is None:
            return
        # NULL-terminated, empty feature list
        features = (ctypes.c_void_p * 1)()
        status = self._open(
            ctypes.byref(self._handle), ctypes.cast(features, ctypes.c_void_p)
        )
        if status != 0:
            raise ExtensionLoadError(self.binary_uri, f"open returned {status}")

    def enumerate_subjects(self, stream: TextIO) -> None:
        libc = _libc()
        with tempfile.TemporaryDirectory(prefix="lv2catalog-") as tmp_dir:
            out_path = os.path.join(tmp_dir, "subjects.ttl")
            fp = libc.fopen(os.fsencode(out_path), b"w")
            if not fp:
                raise ExtensionLoadError(self.binary_uri, "cannot open output stream")
            try:
                status = self._get_subjects(self._handle, fp)
            finally:
                libc.fclose(fp)
            if status != 0:
                raise ExtensionLoadError(
                    self.binary_uri, f"get_subjects returned {status}"
                )
            stream.write(Path(out_path).read_text(encoding="utf-8"))

    def release(self) -> None:
        if self._close is not None and self._handle.value is not None:
            self._close(self._handle)
        self._handle = ctypes.c_void_p()


def open_provider(binary_uri: URIRef) -> ExtensionProvider:
    """
    Load the dynamic manifest binary named by a URI.

    Args:
        binary_uri: file:// URI of a shared library or Python module

    Returns:
        A loaded provider

    Raises:
        ExtensionLoadError: If the binary is missing or cannot be loaded
    """
    path = binary_path(binary_uri)
    if not path.is_file():
        raise ExtensionLoadError(binary_uri, f"no such file: {path}")

    if path.suffix in PYTHON_SUFFIXES:
        provider: ExtensionProvider = PythonModuleProvider(binary_uri, path)
    else:
        provider = SharedLibraryProvider(binary_uri, path)

    logger.debug(f"Loaded dynamic manifest {type(provider).__name__}: {path}")
    return provider


@contextmanager
def provider_session(provider: ExtensionProvider) -> Iterator[ExtensionProvider]:
    """
    Acquire a provider and release it on every exit path.

    Args:
        provider: Loaded provider

    Yields:
        The acquired provider
    """
    provider.acquire()
    try:
        yield provider
    finally:
        provider.release()
