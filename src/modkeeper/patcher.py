"""
Document Patcher

Updates one manifest in a catalog document, or appends a new one, by editing
only the bytes of that manifest. Everything else in the document, including
comments and formatting contributed by other maintainers, is left exactly as
it was.
"""

import re
from typing import List, Tuple
from xml.sax.saxutils import escape

from modkeeper.constants import MANIFEST_BLOCK_PATTERN
from modkeeper.exceptions import InsertionPointNotFoundError
from modkeeper.log_utils import logger
from modkeeper.manifest import Manifest, encode_manifest, merge, parse_manifest

_MANIFEST_BLOCK_RX = re.compile(MANIFEST_BLOCK_PATTERN)


def find_manifest_spans(document: bytes) -> List[Tuple[int, int]]:
    """Return the `(start, end)` byte offsets of every `<Manifest>` block, in order."""
    return [match.span() for match in _MANIFEST_BLOCK_RX.finditer(document)]


def _name_marker(name: str) -> bytes:
    return f"<Name>{escape(name)}</Name>".encode("utf-8")


def apply_patch(document: bytes, name: str, patch: Manifest) -> bytes:
    """
    Apply a manifest patch to a catalog document.

    If a block contains `<Name>{name}</Name>`, that block alone is parsed, merged
    with `patch` and replaced by its re-encoded form. Otherwise `patch` is
    encoded and inserted on a new line right after the last block.

    Parameters:
        document (bytes): The current catalog document.
        name (str): The manifest name to look for.
        patch (Manifest): The update (or new manifest).

    Returns:
        bytes: The patched document.

    Raises:
        InsertionPointNotFoundError: If the document contains no manifest blocks.
        FormatError: If the matching block cannot be parsed.
    """
    spans = find_manifest_spans(document)
    marker = _name_marker(name)
    for start, end in spans:
        if marker not in document[start:end]:
            continue
        existing = parse_manifest(document[start:end])
        merged = merge(existing, patch)
        # The block's own indentation sits before `start` and is kept as is
        new_block = encode_manifest(merged).lstrip(b" ")
        logger.debug(f"Updating manifest {name!r} at bytes {start}-{end}")
        return document[:start] + new_block + document[end:]

    if not spans:
        raise InsertionPointNotFoundError(name)

    end_of_last = spans[-1][1]
    logger.debug(f"Appending manifest {name!r} after byte {end_of_last}")
    new_block = b"\n" + encode_manifest(patch)
    return document[:end_of_last] + new_block + document[end_of_last:]
