"""
Content Cache for modkeeper

This module turns a manifest's link into a local file whose bytes are known to
match the digest published in the catalog. Verified downloads are kept in a
cache directory and reused for as long as they still match.
"""

import hashlib
import os
import platform as _platform
import posixpath
from dataclasses import dataclass
from typing import BinaryIO, Optional
from urllib.parse import urlparse

import platformdirs

from modkeeper.constants import (
    APP_NAME,
    DIR_PERMISSIONS,
    PLATFORM_LINUX,
    PLATFORM_MAC,
    PLATFORM_WINDOWS,
    ZIP_EXTENSION,
)
from modkeeper.exceptions import (
    FileSystemError,
    IntegrityError,
    NoLinkForPlatformError,
    PathValidationError,
)
from modkeeper.files import format_size, hash_file, sanitize_path_component
from modkeeper.log_utils import logger
from modkeeper.manifest import Link, Manifest
from modkeeper.transport import Transport

_SYSTEM_TO_PLATFORM = {
    "Windows": PLATFORM_WINDOWS,
    "Darwin": PLATFORM_MAC,
    "Linux": PLATFORM_LINUX,
}

SHA256_SIZE = 32


def current_platform() -> str:
    """
    Return the platform identifier used to pick per-platform links.

    Returns:
        str: "windows", "mac" or "linux"; other systems yield their lowercased `platform.system()` name, which no link set provides.
    """
    system = _platform.system()
    return _SYSTEM_TO_PLATFORM.get(system, system.lower())


def url_filename(url: str) -> str:
    """Return the last path segment of a URL, ignoring any query string."""
    return posixpath.basename(urlparse(url).path)


def url_extension(url: str) -> str:
    """Return the file extension of a URL's last path segment, including the dot."""
    return posixpath.splitext(url_filename(url))[1]


def select_link(manifest: Manifest, platform: str) -> Link:
    """
    Pick the link to download for a manifest.

    A default link with a digest always wins. Otherwise the link registered for
    `platform` in the manifest's platform set is used.

    Raises:
        NoLinkForPlatformError: If there is no default link and no usable link for `platform`.
    """
    if manifest.link.is_set():
        return manifest.link
    if manifest.platform_links is None:
        raise NoLinkForPlatformError(
            manifest.name,
            platform,
            details="no general or platform-specific link specified",
        )
    link = manifest.platform_links.for_platform(platform)
    if link is None:
        raise NoLinkForPlatformError(
            manifest.name, platform, details=f"unsupported platform: {platform}"
        )
    if not link.is_set():
        raise NoLinkForPlatformError(manifest.name, platform)
    return link


def decode_sha256(hex_digest: str, url: Optional[str] = None) -> bytes:
    """
    Convert a manifest's hex digest into raw digest bytes.

    Raises:
        IntegrityError: If the digest is not valid hex or is not 32 bytes long.
    """
    try:
        digest = bytes.fromhex(hex_digest)
    except ValueError as e:
        raise IntegrityError(
            f"invalid SHA-256 digest in manifest: {hex_digest!r}", url=url
        ) from e
    if len(digest) != SHA256_SIZE:
        raise IntegrityError(
            f"invalid SHA-256 digest in manifest: {hex_digest!r}",
            url=url,
            details=f"expected {SHA256_SIZE} bytes, got {len(digest)}",
        )
    return digest


def default_cache_dir() -> str:
    """
    Get the platform-appropriate user cache directory for modkeeper.

    Returns:
        str: Absolute path to the user cache directory.
    """
    return platformdirs.user_cache_dir(APP_NAME)


@dataclass
class ModFile:
    """A verified copy of a mod's content on local disk."""

    name: str
    """The mod name"""

    path: str
    """Location of the verified bytes"""

    size: int
    """Size of the file in bytes"""

    url: str
    """The link the bytes were published at"""

    from_cache: bool = False
    """Whether the bytes were already cached (no network access was made)"""

    @property
    def filename(self) -> str:
        return url_filename(self.url)

    @property
    def is_zip(self) -> bool:
        return url_extension(self.url) == ZIP_EXTENSION

    def open(self) -> BinaryIO:
        return open(self.path, "rb")


class ModCache:
    """
    Hash-gated store of downloaded mod files.

    Entries are stored as `<cache_dir>/<mod name><extension of the link URL>`.
    The directory is created on the first download, never pruned, and consulted
    before every download.
    """

    def __init__(
        self, cache_dir: Optional[str] = None, transport: Optional[Transport] = None
    ) -> None:
        """
        Parameters:
            cache_dir (Optional[str]): Directory holding cache entries; defaults to the user cache directory.
            transport (Optional[Transport]): Used for downloads; a new one is created if omitted.
        """
        self.cache_dir = cache_dir or default_cache_dir()
        self.transport = transport or Transport()

    def entry_path(self, name: str, extension: str) -> str:
        """
        Build the cache entry path for a mod.

        Raises:
            PathValidationError: If the mod name or extension cannot be used as a file name.
        """
        filename = sanitize_path_component(name + extension)
        if filename is None or sanitize_path_component(name) is None:
            raise PathValidationError(
                f"cannot cache {name!r}: name is not a valid file name", path=name
            )
        return os.path.join(self.cache_dir, filename)

    def get_mod_file(self, manifest: Manifest, platform: Optional[str] = None) -> ModFile:
        """
        Produce a verified local copy of a manifest's content.

        The cache entry is returned untouched if its digest matches the manifest.
        Otherwise the link is downloaded, hashed while streaming, and only moved
        into the cache once its digest has been checked.

        Parameters:
            manifest (Manifest): The mod to fetch.
            platform (Optional[str]): Platform identifier for per-platform links; defaults to the running platform.

        Returns:
            ModFile: The verified file.

        Raises:
            NoLinkForPlatformError: If the manifest has no usable link.
            IntegrityError: If the digest is malformed or the download does not match it.
            TransportError: If the download fails.
            PathValidationError: If the mod name is not usable as a file name.
            FileSystemError: If the cache entry cannot be written.
        """
        link = select_link(manifest, platform or current_platform())
        expected = decode_sha256(link.sha256, link.url)
        entry = self.entry_path(manifest.name, url_extension(link.url))

        if os.path.exists(entry):
            try:
                digest, size = hash_file(entry)
            except OSError as e:
                logger.debug(f"Error hashing cache entry {entry}: {e}")
            else:
                if digest == expected:
                    logger.info(f"=> Installing {manifest.name} from cache")
                    return ModFile(
                        manifest.name, entry, size, link.url, from_cache=True
                    )
                logger.debug(
                    f"Cached copy of {manifest.name} does not match the catalog"
                )

        logger.info(f"=> Installing {manifest.name} from {link.url}")
        return self._download(manifest.name, entry, link.url, expected)

    def _download(self, name: str, entry: str, url: str, expected: bytes) -> ModFile:
        try:
            os.makedirs(self.cache_dir, mode=DIR_PERMISSIONS, exist_ok=True)
        except OSError as e:
            raise FileSystemError(
                f"cannot create cache directory {self.cache_dir}",
                path=self.cache_dir,
                details=str(e),
            ) from e

        temp_path = f"{entry}.tmp.{os.getpid()}"
        sha256_hash = hashlib.sha256()
        size = 0
        try:
            with self.transport.stream(url) as chunks, open(temp_path, "wb") as f:
                for chunk in chunks:
                    f.write(chunk)
                    sha256_hash.update(chunk)
                    size += len(chunk)
            if sha256_hash.digest() != expected:
                raise IntegrityError(
                    f"download {url}: sha256 does not match manifest", url=url
                )
            os.replace(temp_path, entry)
        except OSError as e:
            raise FileSystemError(
                f"cannot write cache entry for {name}", path=entry, details=str(e)
            ) from e
        finally:
            if os.path.exists(temp_path):
                try:
                    os.remove(temp_path)
                except OSError as e_rm:
                    logger.warning(
                        f"Error removing temporary file {temp_path} after failure: {e_rm}"
                    )

        logger.debug(f"Downloaded {name} ({format_size(size)})")
        return ModFile(name, entry, size, url)
