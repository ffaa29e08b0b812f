"""Tests for the product catalog and raw item-name matching."""

import json
from pathlib import Path

import pytest

from store_locator.catalog import DEFAULT_CATALOG, load_catalog
from store_locator.exceptions import ConfigError


class TestMatch:
    @pytest.mark.parametrize(
        ("raw", "code"),
        [
            ("Moonlight Mayhem! 6/750 ml", "MM"),
            ("MOONLIGHT MAYHEM 12/375", "MM"),
            ("Moonlight Mayhem! Extended Cut 6/750 ml", "MMEC"),
            ("Ryes of the Robots Single Barrel", "RR"),
            ("Ryes of the Robot Extended Cut 6/750ml", "RREC"),
            ("Quadraforce Blended Bourbon", "QUAD"),
            ("Moonlight Mayhem 2 White Port Wolf 6/750 ml", "MMWP"),
            ("Moonlight Mayhem! 2 the White Port Wolf", "MMWP"),
        ],
    )
    def test_known_products(self, raw: str, code: str) -> None:
        assert DEFAULT_CATALOG.match(raw) == code

    def test_longest_name_wins(self) -> None:
        """A short display name must not swallow a longer one it prefixes."""
        assert DEFAULT_CATALOG.match("Moonlight Mayhem! Extended Cut") == "MMEC"

    @pytest.mark.parametrize(
        "raw",
        ["Town at the End of Tomorrow 6/750 ml", "Some Vodka 6/750 ml", "", None],
    )
    def test_unmatched_or_excluded(self, raw: object) -> None:
        assert DEFAULT_CATALOG.match(raw) is None

    def test_match_many(self) -> None:
        names = ["Moonlight Mayhem! 6/750 ml", "Some Vodka", "Quadraforce Blended Bourbon"]
        assert DEFAULT_CATALOG.match_many(names) == {"MM", "QUAD"}


class TestNames:
    def test_codes_keep_column_order(self) -> None:
        assert DEFAULT_CATALOG.codes == ["MM", "MMEC", "RR", "RREC", "QUAD", "MMWP"]

    def test_display_name(self) -> None:
        assert DEFAULT_CATALOG.display_name("MM") == "Moonlight Mayhem!"
        assert DEFAULT_CATALOG.display_name("Mystery Gin") == "Mystery Gin"

    def test_code_for(self) -> None:
        assert DEFAULT_CATALOG.code_for("MMEC") == "MMEC"
        assert DEFAULT_CATALOG.code_for(" moonlight mayhem! ") == "MM"
        assert DEFAULT_CATALOG.code_for("Mystery Gin") is None


class TestLoadCatalog:
    def test_load_from_json(self, tmp_path: Path) -> None:
        path = tmp_path / "catalog.json"
        path.write_text(
            json.dumps(
                {
                    "products": {"GIN": "Harbor Gin", "GINX": "Harbor Gin Reserve"},
                    "excluded": ["Old Label"],
                    "aliases": [{"code": "GIN", "tokens": ["harbour", "gin"]}],
                }
            ),
            encoding="utf-8",
        )
        catalog = load_catalog(path)

        assert catalog.codes == ["GIN", "GINX"]
        assert catalog.match("Harbor Gin Reserve 6/750 ml") == "GINX"
        assert catalog.match("Harbour Dry Gin") == "GIN"
        assert catalog.match("Harbor Gin Old Label") is None

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError):
            load_catalog(tmp_path / "missing.json")

    def test_empty_products(self, tmp_path: Path) -> None:
        path = tmp_path / "catalog.json"
        path.write_text('{"products": {}}', encoding="utf-8")
        with pytest.raises(ConfigError, match="non-empty"):
            load_catalog(path)

    def test_alias_to_unknown_code(self, tmp_path: Path) -> None:
        path = tmp_path / "catalog.json"
        path.write_text(
            '{"products": {"GIN": "Harbor Gin"}, "aliases": [{"code": "RUM", "tokens": ["rum"]}]}',
            encoding="utf-8",
        )
        with pytest.raises(ConfigError, match="unknown product code"):
            load_catalog(path)
