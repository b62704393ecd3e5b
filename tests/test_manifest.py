import dataclasses

import pytest


from modkeeper.exceptions import FormatError
from modkeeper.manifest import (
    Link,
    Manifest,
    PlatformLinks,
    encode_manifest,
    merge,
    parse_catalog,
    parse_manifest,
)


@pytest.mark.unit
class TestParseCatalog:
    """Test reading manifests from a catalog document."""

    def test_parses_all_manifests_in_order(self, sample_catalog):
        manifests = parse_catalog(sample_catalog)
        assert [m.name for m in manifests] == [
            "Randomizer 4",
            "MenuChanger",
            "ItemChanger",
        ]

    def test_default_link_is_trimmed(self, sample_catalog):
        """CDATA URLs indented inside the Link element are stripped."""
        rando = parse_catalog(sample_catalog)[0]
        assert rando.link == Link(
            url="https://example.com/v4.1/Randomizer4.zip",
            sha256="aa" + "0" * 62,
        )
        assert rando.repository == "https://example.com/rando"
        assert rando.version == "4.1.0.0"
        assert rando.platform_links is None

    def test_dependencies_unspecified_vs_empty(self, sample_catalog):
        rando, menu, items = parse_catalog(sample_catalog)
        assert rando.dependencies == ["MenuChanger", "ItemChanger"]
        assert menu.dependencies == []
        assert items.dependencies is None

    def test_platform_links(self, sample_catalog):
        items = parse_catalog(sample_catalog)[2]
        assert not items.link.is_set()
        assert items.platform_links is not None
        assert items.platform_links.linux.url == (
            "https://example.com/linux/ItemChanger.zip"
        )
        assert items.platform_links.for_platform("mac").sha256.startswith("dd")
        assert items.platform_links.for_platform("freebsd") is None

    def test_malformed_document(self):
        with pytest.raises(FormatError) as exc_info:
            parse_catalog(b"<ModLinks><Manifest></ModLinks>")
        assert exc_info.value.message == "malformed catalog document"
        assert exc_info.value.details

    def test_manifest_without_name(self):
        with pytest.raises(FormatError, match="no Name"):
            parse_catalog(b"<ModLinks><Manifest><Version>1</Version></Manifest></ModLinks>")

    def test_empty_catalog(self):
        assert parse_catalog(b"<ModLinks></ModLinks>") == []


@pytest.mark.unit
class TestParseManifest:
    """Test reading a single manifest block."""

    def test_single_block(self):
        manifest = parse_manifest(
            b"<Manifest><Name>Foo</Name><Version>1.0</Version></Manifest>"
        )
        assert manifest.name == "Foo"
        assert manifest.version == "1.0"
        assert manifest.dependencies is None

    def test_wrong_root_element(self):
        with pytest.raises(FormatError, match="expected <Manifest>"):
            parse_manifest(b"<ModLinks><Manifest><Name>Foo</Name></Manifest></ModLinks>")


@pytest.mark.unit
class TestEncodeManifest:
    """Test the canonical manifest serialization."""

    def test_default_link_block(self):
        manifest = Manifest(
            name="Foo",
            description="A mod",
            version="1.0.0.0",
            link=Link(url="https://x/Foo.dll", sha256="ab"),
            dependencies=[],
            repository="https://r",
        )
        assert encode_manifest(manifest) == (
            b"    <Manifest>\n"
            b"        <Name>Foo</Name>\n"
            b"        <Description>A mod</Description>\n"
            b"        <Version>1.0.0.0</Version>\n"
            b'        <Link SHA256="ab">https://x/Foo.dll</Link>\n'
            b"        <Dependencies />\n"
            b"        <Repository>https://r</Repository>\n"
            b"    </Manifest>"
        )

    def test_dependencies_and_platform_links(self):
        manifest = Manifest(
            name="Bar",
            description="B",
            version="2.0.0.0",
            platform_links=PlatformLinks(
                windows=Link("https://x/w.zip", "01"),
                mac=Link("https://x/m.zip", "02"),
                linux=Link("https://x/l.zip", "03"),
            ),
            dependencies=["Foo", "Baz"],
        )
        encoded = encode_manifest(manifest)
        assert b"<Link " not in encoded
        assert (
            b"        <Links>\n"
            b'            <Windows SHA256="01">https://x/w.zip</Windows>\n'
            b'            <Mac SHA256="02">https://x/m.zip</Mac>\n'
            b'            <Linux SHA256="03">https://x/l.zip</Linux>\n'
            b"        </Links>\n"
        ) in encoded
        assert (
            b"        <Dependencies>\n"
            b"            <Dependency>Foo</Dependency>\n"
            b"            <Dependency>Baz</Dependency>\n"
            b"        </Dependencies>\n"
        ) in encoded
        assert b"Repository" not in encoded

    def test_unspecified_dependencies_are_omitted(self):
        encoded = encode_manifest(Manifest(name="Foo", link=Link("u", "ab")))
        assert b"Dependencies" not in encoded

    def test_text_is_escaped(self):
        manifest = Manifest(
            name="A & B", link=Link("https://x/?a=1&b=2", "ab"), dependencies=[]
        )
        encoded = encode_manifest(manifest)
        assert b"<Name>A &amp; B</Name>" in encoded
        assert parse_manifest(encoded).link.url == "https://x/?a=1&b=2"

    def test_reparses_to_same_record(self):
        manifest = Manifest(
            name="Foo",
            description="multi\nline",
            version="1.2.0.0",
            link=Link("https://x/Foo.zip", "ff"),
            dependencies=["Bar"],
            repository="https://r",
        )
        assert parse_manifest(encode_manifest(manifest)) == manifest

    def test_level(self):
        encoded = encode_manifest(Manifest(name="Foo", link=Link("u", "ab")), level=0)
        assert encoded.startswith(b"<Manifest>\n    <Name>Foo</Name>")
        assert encoded.endswith(b"\n</Manifest>")

    def test_characters_outside_xml_are_replaced(self):
        manifest = Manifest(
            name="Foo",
            description="bad\x1bchar",
            version="1.0.0.0",
            link=Link("https://x/Foo\x00.dll", "ab"),
            dependencies=["Bar\x07"],
        )
        parsed = parse_manifest(encode_manifest(manifest, level=0))
        assert parsed.description == "bad�char"
        assert parsed.link.url == "https://x/Foo�.dll"
        assert parsed.dependencies == ["Bar�"]

    def test_xml_whitespace_and_non_ascii_kept(self):
        manifest = Manifest(name="Straße", description="tab\there\nnewline", link=Link("u", "ab"))
        parsed = parse_manifest(encode_manifest(manifest, level=0))
        assert parsed.name == "Straße"
        assert parsed.description == "tab\there\nnewline"


@pytest.mark.unit
class TestMerge:
    """Test combining an existing record with a publish patch."""

    def setup_method(self):
        self.existing = Manifest(
            name="Foo",
            description="Old description",
            version="1.0.0.0",
            link=Link("https://x/v1.0/Foo.zip", "aa"),
            dependencies=["Bar"],
            repository="https://old",
        )

    def test_version_and_link_always_replaced(self):
        patch = Manifest(name="Foo", version="1.1.0.0", link=Link("https://x/v1.1/Foo.zip", "bb"))
        merged = merge(self.existing, patch)
        assert merged.version == "1.1.0.0"
        assert merged.link == Link("https://x/v1.1/Foo.zip", "bb")

    def test_empty_fields_keep_existing(self):
        patch = Manifest(name="Foo", version="1.1.0.0", link=Link("u", "bb"))
        merged = merge(self.existing, patch)
        assert merged.description == "Old description"
        assert merged.repository == "https://old"
        assert merged.dependencies == ["Bar"]

    def test_non_empty_fields_override(self):
        patch = Manifest(
            name="Foo",
            description="New",
            version="1.1.0.0",
            link=Link("u", "bb"),
            dependencies=[],
            repository="https://new",
        )
        merged = merge(self.existing, patch)
        assert merged.description == "New"
        assert merged.repository == "https://new"
        assert merged.dependencies == []

    def test_name_and_inputs_untouched(self):
        patch = Manifest(name="Other", version="9.0.0.0", link=Link("u", "bb"))
        merged = merge(self.existing, patch)
        assert merged.name == "Foo"
        assert self.existing.version == "1.0.0.0"
        assert merged is not self.existing

    def test_platform_links_kept_when_patch_has_none(self):
        existing = Manifest(
            name="Foo",
            version="1.0.0.0",
            platform_links=PlatformLinks(
                windows=Link("https://x/w.zip", "01"),
                mac=Link("https://x/m.zip", "02"),
                linux=Link("https://x/l.zip", "03"),
            ),
        )
        patch = Manifest(name="Foo", version="1.1.0.0", link=Link("u", "bb"))
        merged = merge(existing, patch)
        assert merged.platform_links == existing.platform_links
        assert merged.link == Link("u", "bb")

    def test_platform_links_replaced_when_patch_has_them(self):
        links = PlatformLinks(windows=Link("https://x/w2.zip", "04"))
        patch = Manifest(name="Foo", version="1.1.0.0", platform_links=links)
        assert merge(self.existing, patch).platform_links is links

    def test_dependencies_not_shared(self):
        patch = Manifest(name="Foo", version="1.1.0.0", link=Link("u", "bb"))
        merged = merge(self.existing, patch)
        assert merged.dependencies == ["Bar"]
        assert merged.dependencies is not self.existing.dependencies

    def test_records_are_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            self.existing.version = "2.0.0.0"
        with pytest.raises(dataclasses.FrozenInstanceError):
            self.existing.link.url = "https://elsewhere"
