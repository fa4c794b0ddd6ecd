"""
Search path expansion and bundle discovery.

A search path is a colon-separated list of directories. Every directory
directly inside a search path directory is a candidate bundle and is
reported as a trailing-slash file:// URI.
"""

import logging
import os
import re
import shlex
from pathlib import Path
from typing import Iterable, Iterator, Optional

from rdflib import URIRef

logger = logging.getLogger(__name__)

PSEUDO_ENTRIES = (".", "..")

_VARIABLE = re.compile(r"\$(?:\{(\w+)\}|(\w+))")


def split_search_path(value: str) -> list[str]:
    """
    Split a colon-separated search path, preserving order.

    Args:
        value: Search path such as '/usr/lib/lv2:/opt/lv2'

    Returns:
        Directories in the order given, without empty segments
    """
    return [segment for segment in value.split(":") if segment]


def expand_words(segment: str) -> list[str]:
    """
    Expand one search path segment like a shell word.

    Variables are substituted first (unset ones expand to nothing), the
    result is split into words and each word gets tilde expansion.

    Args:
        segment: Raw segment, e.g. '$HOME/.lv2' or '~/.lv2'

    Returns:
        Expanded words (possibly empty)
    """
    expanded = _VARIABLE.sub(
        lambda match: os.environ.get(match.group(1) or match.group(2), ""), segment
    )
    try:
        words = shlex.split(expanded)
    except ValueError as e:
        logger.warning(f"Cannot expand search path entry {segment!r}: {e}")
        return []
    return [os.path.expanduser(word) for word in words]


def expand_default_path(value: str) -> list[str]:
    """
    Expand a default search path list.

    Segments that expand to no words are skipped.

    Args:
        value: Colon-separated default path

    Returns:
        Expanded directories in order
    """
    directories: list[str] = []
    for segment in split_search_path(value):
        words = expand_words(segment)
        if not words:
            logger.debug(f"Search path entry {segment!r} expanded to nothing")
            continue
        directories.extend(words)
    return directories


def resolve_search_path(explicit: Optional[str], default: str) -> list[str]:
    """
    Resolve the directories to scan.

    An explicit path is used verbatim; only the default list is expanded.

    Args:
        explicit: Caller- or environment-supplied path, if any
        default: Platform default path

    Returns:
        Directories to scan, in order
    """
    if explicit:
        return split_search_path(explicit)
    return expand_default_path(default)


def bundle_uri_for(path: Path) -> URIRef:
    """Build the trailing-slash directory URI of a bundle."""
    uri = Path(os.path.abspath(path)).as_uri()
    if not uri.endswith("/"):
        uri += "/"
    return URIRef(uri)


def iter_bundle_uris(directory: str) -> Iterator[URIRef]:
    """
    Yield the URI of every bundle directory inside a search path directory.

    Non-directory entries are skipped. A directory that cannot be read
    yields nothing.

    Args:
        directory: Search path directory

    Yields:
        Bundle directory URIs, sorted by entry name
    """
    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda entry: entry.name)
    except OSError as e:
        logger.debug(f"Skipping unreadable directory {directory}: {e}")
        return

    for entry in entries:
        if entry.name in PSEUDO_ENTRIES:
            continue
        try:
            is_dir = entry.is_dir()
        except OSError:
            is_dir = False
        if not is_dir:
            continue
        yield bundle_uri_for(Path(entry.path))


def discover_bundles(directories: Iterable[str]) -> Iterator[URIRef]:
    """
    Yield bundle URIs for each directory of a search path, in order.

    Args:
        directories: Search path directories

    Yields:
        Bundle directory URIs
    """
    for directory in directories:
        logger.debug(f"Scanning {directory} for bundles")
        yield from iter_bundle_uris(directory)
