"""
Catalog retrieval

Downloads the community catalog and turns it into manifests.
"""

from typing import List

from modkeeper.log_utils import logger
from modkeeper.manifest import Manifest, parse_catalog
from modkeeper.transport import Transport


def get_modlinks(url: str, transport: Transport) -> List[Manifest]:
    """
    Fetch and parse the catalog at `url`.

    Raises:
        TransportError: If the catalog cannot be downloaded.
        FormatError: If the catalog is not a valid document.
    """
    logger.debug(f"Fetching catalog from {url}")
    manifests = parse_catalog(transport.fetch_bytes(url))
    logger.debug(f"Catalog lists {len(manifests)} mods")
    return manifests
