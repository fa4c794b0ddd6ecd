"""
Pytest configuration and fixtures for lv2catalog tests.

Provides helpers that build LV2 bundle trees in a temporary directory.
"""

import shutil
import subprocess
from pathlib import Path
from typing import Callable, Optional

import pytest
from rdflib import Graph

from lv2catalog.config import Settings

PREFIXES = """\
@prefix lv2: <http://lv2plug.in/ns/lv2core#> .
@prefix rdfs: <http://www.w3.org/2000/01/rdf-schema#> .
@prefix dynman: <http://lv2plug.in/ns/ext/dynmanifest#> .
"""

CORE_SPEC_MANIFEST = PREFIXES + """
<http://lv2plug.in/ns/lv2core> a lv2:Specification ;
    rdfs:seeAlso <lv2.ttl> .
"""

CORE_SPEC_DATA = PREFIXES + """
lv2:Plugin a rdfs:Class ;
    rdfs:label "Plugin" ;
    rdfs:subClassOf [ a rdfs:Class ] .

lv2:DelayPlugin a rdfs:Class ;
    rdfs:label "Delay" ;
    rdfs:subClassOf lv2:Plugin .

lv2:ReverbPlugin a rdfs:Class ;
    rdfs:label "Reverb" ;
    rdfs:subClassOf lv2:DelayPlugin .

lv2:AmplifierPlugin a rdfs:Class ;
    rdfs:label "Amplifier" ;
    rdfs:subClassOf lv2:Plugin .

lv2:FilterPlugin a rdfs:Class ;
    rdfs:label "Filter" ;
    rdfs:subClassOf lv2:Plugin .
"""


def plugin_manifest(*plugin_uris: str) -> str:
    """Manifest declaring each plugin with a separate data file."""
    body = "".join(
        f"<{uri}> a lv2:Plugin ;\n    rdfs:seeAlso <{uri.rsplit('/', 1)[-1]}.ttl> .\n\n"
        for uri in plugin_uris
    )
    return PREFIXES + "\n" + body


DYNAMIC_MODULE = '''
CALLS = []


def lv2_dyn_manifest_open(features):
    CALLS.append("open")
    return {"plugins": ["http://example.org/plugins/generated"]}


def lv2_dyn_manifest_get_subjects(handle, stream):
    CALLS.append("get_subjects")
    stream.write("@prefix lv2: <http://lv2plug.in/ns/lv2core#> .\\n")
    for uri in handle["plugins"]:
        stream.write(f"<{uri}> a lv2:Plugin .\\n")
    return 0


def lv2_dyn_manifest_close(handle):
    CALLS.append("close")
'''

NATIVE_PLUGIN = "http://example.org/plugins/native"

NATIVE_DYNAMIC_SOURCE = r"""
#include <stdio.h>

static int opened;

int lv2_dyn_manifest_open(void** handle, const void* const* features)
{
    (void)features;
    *handle = &opened;
    return 0;
}

int lv2_dyn_manifest_get_subjects(void* handle, FILE* fp)
{
    if (handle != &opened) {
        return 1;
    }
    fprintf(fp, "@prefix lv2: <http://lv2plug.in/ns/lv2core#> .\n");
    fprintf(fp, "<http://example.org/plugins/native> a lv2:Plugin .\n");
    return 0;
}

void lv2_dyn_manifest_close(void* handle)
{
    (void)handle;
}
"""


@pytest.fixture(autouse=True)
def clear_catalog_env(monkeypatch):
    """Keep the host environment from leaking into settings."""
    monkeypatch.delenv("LV2_PATH", raising=False)
    for name in [
        "LV2CATALOG_DEFAULT_LV2_PATH",
        "LV2CATALOG_MANIFEST_FILENAME",
        "LV2CATALOG_STORE_BACKEND",
        "LV2CATALOG_DYNAMIC_MANIFEST_ENABLED",
        "LV2CATALOG_LOG_LEVEL",
        "LV2CATALOG_LOG_FORMAT",
        "LV2CATALOG_LOG_FILE",
    ]:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def lv2_root(tmp_path) -> Path:
    """Empty search path directory."""
    root = tmp_path / "lv2"
    root.mkdir()
    return root


@pytest.fixture
def make_bundle() -> Callable[..., Path]:
    """
    Factory creating a bundle directory.

    Usage:
        make_bundle(root, "amp.lv2", manifest_text, {"amp.ttl": "..."})
    """

    def _make(
        root: Path,
        name: str,
        manifest: Optional[str],
        files: Optional[dict[str, str]] = None,
    ) -> Path:
        bundle = root / name
        bundle.mkdir(parents=True)
        if manifest is not None:
            (bundle / "manifest.ttl").write_text(manifest, encoding="utf-8")
        for filename, content in (files or {}).items():
            (bundle / filename).write_text(content, encoding="utf-8")
        return bundle

    return _make


@pytest.fixture
def core_spec_bundle(lv2_root, make_bundle) -> Path:
    """Bundle holding the core specification and its plugin classes."""
    return make_bundle(
        lv2_root, "lv2core.lv2", CORE_SPEC_MANIFEST, {"lv2.ttl": CORE_SPEC_DATA}
    )


@pytest.fixture
def catalog_settings(tmp_path) -> Settings:
    """Settings that never fall back to the real system search path."""
    return Settings(
        _env_file=None,
        default_lv2_path=str(tmp_path / "no-such-default"),
    )


@pytest.fixture
def graph() -> Graph:
    return Graph()


@pytest.fixture
def build_native_dynmanifest(tmp_path) -> Callable[[Path], Path]:
    """
    Factory compiling NATIVE_DYNAMIC_SOURCE into a shared library.

    Skips the test when no C compiler is available.
    """
    compiler = shutil.which("cc") or shutil.which("gcc") or shutil.which("clang")
    if compiler is None:
        pytest.skip("no C compiler available")

    def _build(directory: Path, name: str = "dyn.so") -> Path:
        source = tmp_path / "dynmanifest.c"
        source.write_text(NATIVE_DYNAMIC_SOURCE, encoding="utf-8")
        directory.mkdir(parents=True, exist_ok=True)
        library = directory / name
        completed = subprocess.run(
            [compiler, "-shared", "-fPIC", "-o", str(library), str(source)],
            capture_output=True,
            text=True,
        )
        if completed.returncode != 0:
            pytest.skip(f"cannot build shared library: {completed.stderr.strip()}")
        return library

    return _build
