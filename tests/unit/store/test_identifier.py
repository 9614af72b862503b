"""
Tests for Identifier parsing and path mapping.
"""
import pytest
from pathlib import Path

from commonplace.core.exceptions import MalformedError
from commonplace.store.identifier import Identifier, parse_prefix


class TestParse:
    """Tests for Identifier.parse normalization."""

    @pytest.mark.parametrize(
        "raw, canonical",
        [
            ("diary/2024-01-01", "diary/2024-01-01"),
            ("diary\\2024-01-01", "diary/2024-01-01"),
            ("diary//2024-01-01/", "diary/2024-01-01"),
            ("./diary/2024-01-01", "diary/2024-01-01"),
            ("bookmark/reading/python", "bookmark/reading/python"),
            ("  contact/alice  ", "contact/alice"),
        ],
    )
    def test_normalizes(self, raw, canonical):
        assert Identifier.parse(raw).canonical == canonical

    def test_unicode_nfc(self):
        decomposed = "contact/Jose\u0301"
        composed = "contact/Jos\u00e9"
        assert Identifier.parse(decomposed) == Identifier.parse(composed)

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "diary",
            "/etc/passwd",
            "diary/../contact/alice",
            "diary/./x",
            "diary/.hidden",
            "diary/a:b",
            "diary/what?",
            "diary/tab\there",
            "diary/ padded",
            "diary/" + "x" * 300,
        ],
    )
    def test_rejects(self, raw):
        with pytest.raises(MalformedError):
            Identifier.parse(raw)

    def test_rejects_non_string(self):
        with pytest.raises(MalformedError):
            Identifier.parse(42)

    def test_identifier_passes_through(self):
        identifier = Identifier.parse("diary/x")
        assert Identifier.parse(identifier) is identifier


class TestAccessors:
    """Tests for segment accessors and comparisons."""

    def test_segments(self):
        identifier = Identifier.parse("bookmark/reading/python")
        assert identifier.segments == ("bookmark", "reading", "python")
        assert identifier.collection == "bookmark"
        assert identifier.name == "reading/python"

    def test_in_collection_is_segment_wise(self):
        identifier = Identifier.parse("bookmark/reading/python")
        assert identifier.in_collection("bookmark")
        assert identifier.in_collection("bookmark/reading")
        assert not identifier.in_collection("book")

    def test_hash_and_order(self):
        a, b = Identifier.parse("contact/alice"), Identifier.parse("diary/2024-01-01")
        assert a < b
        assert {a, Identifier.parse("contact\\alice")} == {a}
        assert str(a) == "contact/alice"
        assert repr(a) == "Identifier('contact/alice')"

    def test_parse_prefix(self):
        assert parse_prefix("bookmark/reading/") == ("bookmark", "reading")
        with pytest.raises(MalformedError):
            parse_prefix("..")


class TestPaths:
    """Tests for the identifier <-> path mapping."""

    def test_to_path(self):
        root = Path("/data/store")
        path = Identifier.parse("diary/2024/01-01").to_path(root)
        assert path == root / "diary" / "2024" / "01-01.md"

    def test_from_path(self, tmp_dir):
        path = tmp_dir / "contact" / "alice.md"
        assert Identifier.from_path(tmp_dir, path) == Identifier.parse("contact/alice")

    def test_from_path_outside_root(self, tmp_dir):
        with pytest.raises(MalformedError):
            Identifier.from_path(tmp_dir / "store", tmp_dir / "other" / "x.md")

    def test_from_path_requires_collection(self, tmp_dir):
        with pytest.raises(MalformedError):
            Identifier.from_path(tmp_dir, tmp_dir / "loose.md")

    def test_mapping_is_inverse(self, tmp_dir):
        identifier = Identifier.parse("bookmark/reading/python")
        assert Identifier.from_path(tmp_dir, identifier.to_path(tmp_dir)) == identifier
