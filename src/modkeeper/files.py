"""
File Operations for modkeeper

This module provides path validation, atomic writes, and digest helpers shared
by the cache, the install tree and the publisher.
"""

import hashlib
import os
import stat
import tempfile
from typing import Optional, Tuple

from modkeeper.log_utils import logger

HASH_READ_SIZE = 64 * 1024


def sanitize_path_component(component: Optional[str]) -> Optional[str]:
    """
    Validate a single filesystem path component.

    Returns the component unchanged if it is a safe, relative path segment. Returns
    None when the input is None or when the component is unsafe: empty or
    whitespace-only, "." or "..", absolute, containing a null byte, or containing
    a path separator character.

    Mod names are used as directory and file names, so this is applied to every
    name before it reaches the file system.

    Parameters:
        component (Optional[str]): The candidate path component to validate.

    Returns:
        Optional[str]: The component if it is safe, otherwise `None`.
    """
    if component is None:
        return None

    stripped = component.strip()
    if not stripped or stripped in {".", ".."}:
        return None

    if os.path.isabs(component):
        return None

    if "\x00" in component:
        return None

    for separator in ("/", "\\", os.sep, os.altsep):
        if separator and separator in component:
            return None

    return component


def is_within_base(real_base_dir: str, candidate: str) -> bool:
    """
    Determine whether the candidate path resides within the given base directory.

    Returns:
        True if the candidate path is inside `real_base_dir`, False otherwise.
    """
    try:
        return os.path.commonpath([real_base_dir, candidate]) == real_base_dir
    except ValueError:
        return False


def safe_extract_path(extract_dir: str, file_path: str) -> str:
    """
    Resolve a safe absolute extraction path and prevent directory traversal.

    Parameters:
        extract_dir (str): Base directory intended for extraction.
        file_path (str): Member path from the archive to be extracted.

    Returns:
        str: Absolute, normalized path inside extract_dir suitable for extraction.

    Raises:
        ValueError: If the resolved path is outside extract_dir.
    """
    real_extract_dir = os.path.realpath(extract_dir)
    prospective_path = os.path.join(real_extract_dir, file_path)
    normalized_path = os.path.realpath(prospective_path)

    if not is_within_base(real_extract_dir, normalized_path):
        raise ValueError(
            f"Unsafe extraction path '{file_path}' is outside base '{extract_dir}'"
        )

    return normalized_path


def hash_file(file_path: str) -> Tuple[bytes, int]:
    """
    Compute the raw SHA-256 digest and size of a file.

    The file is streamed, never loaded whole into memory.

    Returns:
        Tuple[bytes, int]: The 32-byte digest and the number of bytes read.

    Raises:
        OSError: If the file cannot be opened or read.
    """
    sha256_hash = hashlib.sha256()
    size = 0
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(HASH_READ_SIZE), b""):
            sha256_hash.update(chunk)
            size += len(chunk)
    return sha256_hash.digest(), size


def atomic_write_bytes(file_path: str, content: bytes) -> None:
    """
    Write bytes to a file atomically by writing a temporary file beside it and replacing the target.

    Either the old file or the complete new content is on disk afterwards, never
    a partial write.

    Raises:
        OSError: If the temporary file cannot be created, written, or moved into place.
    """
    temp_fd, temp_path = tempfile.mkstemp(
        dir=os.path.dirname(os.path.abspath(file_path)), prefix="tmp-", suffix=".tmp"
    )
    try:
        with os.fdopen(temp_fd, "wb") as temp_f:
            temp_f.write(content)
        if os.path.exists(file_path):
            # Keep the permissions of the file being replaced
            os.chmod(temp_path, stat.S_IMODE(os.stat(file_path).st_mode))
        os.replace(temp_path, file_path)
    finally:
        if os.path.exists(temp_path):
            try:
                os.remove(temp_path)
            except OSError as e:
                logger.debug(f"Could not remove temporary file {temp_path}: {e}")


def format_size(num_bytes: int) -> str:
    """Render a byte count the way download messages show it."""
    if num_bytes < 1_000:
        return f"{num_bytes} bytes"
    if num_bytes < 1_000_000:
        return f"{num_bytes / 1_000:.1f} kB"
    if num_bytes < 1_000_000_000:
        return f"{num_bytes / 1_000_000:.1f} MB"
    return f"{num_bytes / 1_000_000_000:.1f} GB"
