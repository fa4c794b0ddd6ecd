"""Tests for dynamic manifest providers."""

import io
from unittest.mock import MagicMock

import pytest
from conftest import DYNAMIC_MODULE, NATIVE_PLUGIN
from rdflib import URIRef

from lv2catalog.exceptions import ExtensionLoadError
from lv2catalog.extensions import (
    PythonModuleProvider,
    SharedLibraryProvider,
    binary_path,
    open_provider,
    provider_session,
)


def test_binary_path_requires_file_uri():
    with pytest.raises(ExtensionLoadError, match="not a file URI"):
        binary_path(URIRef("http://example.org/dynman.so"))


def test_binary_path_decodes_file_uri(tmp_path):
    path = tmp_path / "with space.so"

    assert binary_path(URIRef(path.as_uri())) == path


def test_missing_binary_raises(tmp_path):
    with pytest.raises(ExtensionLoadError, match="no such file"):
        open_provider(URIRef((tmp_path / "missing.so").as_uri()))


def test_python_module_provider_lifecycle(tmp_path):
    module_path = tmp_path / "dynman.py"
    module_path.write_text(DYNAMIC_MODULE)

    provider = open_provider(URIRef(module_path.as_uri()))
    stream = io.StringIO()
    with provider_session(provider):
        provider.enumerate_subjects(stream)

    assert isinstance(provider, PythonModuleProvider)
    assert "<http://example.org/plugins/generated> a lv2:Plugin" in stream.getvalue()
    assert provider._module.CALLS == ["open", "get_subjects", "close"]


def test_python_module_without_get_subjects_is_rejected(tmp_path):
    module_path = tmp_path / "broken.py"
    module_path.write_text("def lv2_dyn_manifest_open(features):\n    return None\n")

    with pytest.raises(ExtensionLoadError, match="lv2_dyn_manifest_get_subjects"):
        open_provider(URIRef(module_path.as_uri()))


def test_python_module_import_error_is_wrapped(tmp_path):
    module_path = tmp_path / "explodes.py"
    module_path.write_text("raise RuntimeError('no audio today')\n")

    with pytest.raises(ExtensionLoadError, match="no audio today"):
        open_provider(URIRef(module_path.as_uri()))


def test_python_module_failure_status_is_error(tmp_path):
    module_path = tmp_path / "failing.py"
    module_path.write_text(
        "def lv2_dyn_manifest_get_subjects(handle, stream):\n    return 1\n"
    )
    provider = open_provider(URIRef(module_path.as_uri()))

    with pytest.raises(ExtensionLoadError, match="returned 1"):
        with provider_session(provider):
            provider.enumerate_subjects(io.StringIO())


def test_invalid_shared_library_is_rejected(tmp_path):
    library_path = tmp_path / "dynman.so"
    library_path.write_text("this is not an ELF file")

    with pytest.raises(ExtensionLoadError):
        SharedLibraryProvider(URIRef(library_path.as_uri()), library_path)


def test_session_releases_on_error():
    provider = MagicMock()
    provider.enumerate_subjects.side_effect = ExtensionLoadError("x", "boom")

    with pytest.raises(ExtensionLoadError):
        with provider_session(provider):
            provider.enumerate_subjects(io.StringIO())

    provider.acquire.assert_called_once()
    provider.release.assert_called_once()


def test_shared_library_provider_lifecycle(tmp_path, build_native_dynmanifest):
    library_path = build_native_dynmanifest(tmp_path / "native")

    provider = open_provider(URIRef(library_path.as_uri()))
    stream = io.StringIO()
    with provider_session(provider):
        assert provider._handle.value is not None
        provider.enumerate_subjects(stream)

    assert isinstance(provider, SharedLibraryProvider)
    assert f"<{NATIVE_PLUGIN}> a lv2:Plugin" in stream.getvalue()
    assert provider._handle.value is None


def test_shared_library_without_open_gets_null_handle(tmp_path, build_native_dynmanifest):
    library_path = build_native_dynmanifest(tmp_path / "native")
    provider = SharedLibraryProvider(URIRef(library_path.as_uri()), library_path)
    provider._open = None

    # get_subjects rejects a handle it did not hand out
    with pytest.raises(ExtensionLoadError, match="returned 1"):
        with provider_session(provider):
            provider.enumerate_subjects(io.StringIO())
