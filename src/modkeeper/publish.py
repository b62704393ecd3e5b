"""
Catalog publishing

Builds a manifest patch from a mod file URL and applies it to a local
catalog document.
"""

import posixpath
import re
from dataclasses import replace
from typing import List, Optional

from modkeeper.cache import url_filename
from modkeeper.constants import (
    DEPS_NONE_KEYWORD,
    NUMERIC_VERSION_PATTERN,
    VERSION_COMPONENTS,
    VERSION_URL_PATTERN,
)
from modkeeper.exceptions import FileSystemError, ValidationError
from modkeeper.files import atomic_write_bytes
from modkeeper.log_utils import logger
from modkeeper.manifest import Link, Manifest
from modkeeper.patcher import apply_patch
from modkeeper.transport import Transport

_VERSION_URL_RX = re.compile(VERSION_URL_PATTERN)
_NUMERIC_VERSION_RX = re.compile(NUMERIC_VERSION_PATTERN)


def pad_version(version: str) -> str:
    """Extend a dotted version with zero components, e.g. "1.2" -> "1.2.0.0"."""
    parts = version.split(".")
    while len(parts) < VERSION_COMPONENTS:
        parts.append("0")
    return ".".join(parts)


def parse_deps(deps: str) -> Optional[List[str]]:
    """
    Interpret the dependencies argument of a publish.

    Returns:
        Optional[List[str]]: `None` for "" (leave dependencies unchanged), `[]` for "none", otherwise the comma-separated names.
    """
    if deps == "":
        return None
    if deps == DEPS_NONE_KEYWORD:
        return []
    return deps.split(",")


def name_from_url(url: str) -> str:
    return posixpath.splitext(url_filename(url))[0]


def version_from_url(url: str) -> Optional[str]:
    match = _VERSION_URL_RX.search(url)
    return match.group(1) if match else None


def build_patch(
    url: str,
    name: Optional[str] = None,
    version: Optional[str] = None,
    description: str = "",
    deps: str = "",
    repository: str = "",
    sha256: str = "",
) -> Manifest:
    """
    Build the manifest patch for a mod file URL.

    The name defaults to the URL's file name without its extension and the
    version to a `/v<number>/` path segment; the version is padded to four
    components.

    Raises:
        ValidationError: If the URL is missing or the name or version cannot be determined.
    """
    if not url:
        raise ValidationError(
            f"publish {name or ''!r}: no mod file URL specified", field="url"
        )
    if not name:
        name = name_from_url(url)
    if not name:
        raise ValidationError(
            f"publish {url!r}: name could not be determined from URL",
            field="name",
            value=url,
        )
    if not version:
        version = version_from_url(url)
    if not version:
        raise ValidationError(
            f"publish {name!r}: version could not be determined from URL",
            field="version",
            value=url,
        )
    if not _NUMERIC_VERSION_RX.match(version):
        raise ValidationError(
            f"publish {name!r}: version must be dotted numbers",
            field="version",
            value=version,
        )

    return Manifest(
        name=name,
        description=description,
        version=pad_version(version),
        link=Link(url=url, sha256=sha256),
        dependencies=parse_deps(deps),
        repository=repository,
    )


def publish(modlinks_path: str, patch: Manifest, transport: Transport) -> bytes:
    """
    Publish a patch into the catalog document at `modlinks_path`.

    The digest of the patch's link is computed by downloading it. The document is
    only rewritten once patching has succeeded, and is replaced atomically.

    Returns:
        bytes: The new document contents.

    Raises:
        TransportError: If the mod file cannot be downloaded.
        FileSystemError: If the document cannot be read or written.
        InsertionPointNotFoundError: If the document has no manifest blocks.
        FormatError: If the matching manifest block cannot be parsed.
    """
    digest = transport.sha256_of_url(patch.link.url)
    patch = replace(patch, link=Link(url=patch.link.url, sha256=digest))
    logger.debug(f"{patch.link.url} has SHA-256 {digest}")

    try:
        with open(modlinks_path, "rb") as f:
            document = f.read()
    except OSError as e:
        raise FileSystemError(
            f"publish {patch.name!r}: cannot read {modlinks_path}",
            path=modlinks_path,
            details=str(e),
        ) from e

    updated = apply_patch(document, patch.name, patch)

    try:
        atomic_write_bytes(modlinks_path, updated)
    except OSError as e:
        raise FileSystemError(
            f"publish {patch.name!r}: cannot write {modlinks_path}",
            path=modlinks_path,
            details=str(e),
        ) from e
    logger.info(f"Published {patch.name} {patch.version} to {modlinks_path}")
    return updated
