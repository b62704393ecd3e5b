"""
Catalog Document Model

This module defines the manifest records found in a ModLinks catalog and the
functions that read them from, and write them back to, the XML document.
"""

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field, replace
from typing import Iterator, List, Optional

from modkeeper.constants import (
    MANIFEST_INDENT,
    MANIFEST_TAG,
    PLATFORM_LINUX,
    PLATFORM_MAC,
    PLATFORM_WINDOWS,
    SUPPORTED_PLATFORMS,
)
from modkeeper.exceptions import FormatError

# (element name, PlatformLinks attribute) in document order
_PLATFORM_TAGS = (
    ("Windows", PLATFORM_WINDOWS),
    ("Mac", PLATFORM_MAC),
    ("Linux", PLATFORM_LINUX),
)

# Characters outside the XML 1.0 Char production
_INVALID_XML_CHARS = re.compile(
    r"[^\x09\x0a\x0d\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]"
)


@dataclass(frozen=True)
class Link:
    """A downloadable artifact and the digest its bytes must have."""

    url: str = ""
    """Where the artifact is downloaded from"""

    sha256: str = ""
    """Hex-encoded SHA-256 digest of the expected content"""

    def is_set(self) -> bool:
        """Return True when the link carries a digest and can be used."""
        return bool(self.sha256)


@dataclass(frozen=True)
class PlatformLinks:
    """One link per supported operating system family."""

    windows: Link = field(default_factory=Link)
    mac: Link = field(default_factory=Link)
    linux: Link = field(default_factory=Link)

    def for_platform(self, platform: str) -> Optional[Link]:
        """
        Return the link for a platform identifier.

        Returns:
            Optional[Link]: The link registered for `platform`, or `None` if the identifier is not one of the supported platforms.
        """
        if platform in SUPPORTED_PLATFORMS:
            return getattr(self, platform)
        return None


@dataclass(frozen=True)
class Manifest:
    """A single mod's entry in the catalog."""

    name: str
    """Unique human-readable identifier, used as the join key everywhere"""

    description: str = ""
    version: str = ""

    link: Link = field(default_factory=Link)
    """Default link shared by every platform"""

    platform_links: Optional[PlatformLinks] = None
    """Per-platform links, used when no default link is set"""

    dependencies: Optional[List[str]] = None
    """Names of required mods; `None` means unspecified, `[]` means none"""

    repository: str = ""


def _local_name(tag: str) -> str:
    # Strip a "{namespace}" prefix; the published catalog declares a default namespace.
    return tag.rsplit("}", 1)[-1]


def _children(elem: ET.Element, name: str) -> Iterator[ET.Element]:
    return (child for child in elem if _local_name(child.tag) == name)


def _child(elem: ET.Element, name: str) -> Optional[ET.Element]:
    return next(_children(elem, name), None)


def _child_text(elem: ET.Element, name: str) -> str:
    child = _child(elem, name)
    if child is None or child.text is None:
        return ""
    return child.text


def _parse_link(elem: Optional[ET.Element]) -> Link:
    if elem is None:
        return Link()
    # URLs are indented inside the element in the published catalog
    return Link(
        url=(elem.text or "").strip(),
        sha256=(elem.get("SHA256") or "").strip(),
    )


def _manifest_from_element(elem: ET.Element) -> Manifest:
    name = _child_text(elem, "Name")
    if not name.strip():
        raise FormatError("manifest has no Name")

    platform_links = None
    links_elem = _child(elem, "Links")
    if links_elem is not None:
        platform_links = PlatformLinks(
            **{
                attr: _parse_link(_child(links_elem, tag))
                for tag, attr in _PLATFORM_TAGS
            }
        )

    dependencies = None
    deps_elem = _child(elem, "Dependencies")
    if deps_elem is not None:
        dependencies = [
            (dep.text or "").strip() for dep in _children(deps_elem, "Dependency")
        ]

    return Manifest(
        name=name,
        description=_child_text(elem, "Description"),
        version=_child_text(elem, "Version").strip(),
        link=_parse_link(_child(elem, "Link")),
        platform_links=platform_links,
        dependencies=dependencies,
        repository=_child_text(elem, "Repository").strip(),
    )


def _parse_xml(document: bytes) -> ET.Element:
    try:
        return ET.fromstring(document)
    except ET.ParseError as e:
        raise FormatError("malformed catalog document", details=str(e)) from e


def parse_catalog(document: bytes) -> List[Manifest]:
    """
    Parse a full catalog document into its manifests, preserving document order.

    Any root element is accepted; its `Manifest` children become records.

    Parameters:
        document (bytes): The raw XML catalog.

    Returns:
        List[Manifest]: One record per `Manifest` element.

    Raises:
        FormatError: If the document is not well-formed XML or a manifest has no name.
    """
    root = _parse_xml(document)
    return [_manifest_from_element(elem) for elem in _children(root, MANIFEST_TAG)]


def parse_manifest(text: bytes) -> Manifest:
    """
    Parse a single `<Manifest>` block.

    Raises:
        FormatError: If the text is not a well-formed `Manifest` element.
    """
    root = _parse_xml(text)
    if _local_name(root.tag) != MANIFEST_TAG:
        raise FormatError(f"expected <{MANIFEST_TAG}> element, got <{root.tag}>")
    return _manifest_from_element(root)


def _xml_text(text: str) -> str:
    return _INVALID_XML_CHARS.sub("\ufffd", text)


def _text_element(parent: ET.Element, tag: str, text: str) -> ET.Element:
    elem = ET.SubElement(parent, tag)
    elem.text = _xml_text(text)
    return elem


def _link_element(tag: str, link: Link) -> ET.Element:
    elem = ET.Element(tag, {"SHA256": _xml_text(link.sha256)})
    elem.text = _xml_text(link.url)
    return elem


def encode_manifest(manifest: Manifest, level: int = 1) -> bytes:
    """
    Serialize a manifest into its canonical XML block.

    The block is indented by four spaces per nesting level, starting at `level`;
    the opening tag itself carries the `level` indentation and no trailing newline
    is written. Characters XML cannot represent are replaced with U+FFFD.
    Unspecified dependencies omit the `Dependencies` element, an empty
    list writes `<Dependencies />`.

    Parameters:
        manifest (Manifest): The record to serialize.
        level (int): Nesting depth of the `Manifest` element within the document.

    Returns:
        bytes: UTF-8 encoded XML.
    """
    root = ET.Element(MANIFEST_TAG)
    _text_element(root, "Name", manifest.name)
    _text_element(root, "Description", manifest.description)
    _text_element(root, "Version", manifest.version)
    if manifest.link.is_set() or manifest.platform_links is None:
        root.append(_link_element("Link", manifest.link))
    if manifest.platform_links is not None:
        links = ET.SubElement(root, "Links")
        for tag, attr in _PLATFORM_TAGS:
            links.append(_link_element(tag, getattr(manifest.platform_links, attr)))
    if manifest.dependencies is not None:
        deps = ET.SubElement(root, "Dependencies")
        for dep in manifest.dependencies:
            _text_element(deps, "Dependency", dep)
    if manifest.repository:
        _text_element(root, "Repository", manifest.repository)

    ET.indent(root, space=MANIFEST_INDENT, level=level)
    text = MANIFEST_INDENT * level + ET.tostring(root, encoding="unicode")
    return text.encode("utf-8")


def merge(existing: Manifest, patch: Manifest) -> Manifest:
    """
    Combine a catalog record with a publish patch.

    The version and default link always come from `patch`; platform links come
    from `patch` only when it carries them. Description and repository
    are taken from `patch` when non-empty, and dependencies when specified;
    otherwise the existing values are kept. The name is never changed.

    Returns:
        Manifest: A new record; neither argument is modified.
    """
    dependencies = existing.dependencies
    if patch.dependencies is not None:
        dependencies = patch.dependencies
    platform_links = existing.platform_links
    if patch.platform_links is not None:
        platform_links = patch.platform_links
    return replace(
        existing,
        version=patch.version,
        link=patch.link,
        platform_links=platform_links,
        description=patch.description or existing.description,
        repository=patch.repository or existing.repository,
        dependencies=list(dependencies) if dependencies is not None else None,
    )
