"""Product catalog and raw item-name matching.

The catalog is configuration: a fixed, ordered mapping from short product
code to display name. Its order is the order of the product flag columns
in every store table this package writes.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from store_locator.exceptions import ConfigError
from store_locator.etl.utils import is_missing

logger = logging.getLogger(__name__)

# Pack-size suffixes on raw item names, e.g. "Ryes of the Robots 6/750 ml"
_PACK_SIZE_RES = (
    re.compile(r"\s+\d+/\d+\s*ml$", re.IGNORECASE),
    re.compile(r"\s+\d+/\d+$", re.IGNORECASE),
)


def _match_form(text: str) -> str:
    """Lower-case, drop "!", collapse whitespace."""
    return re.sub(r"\s+", " ", text.lower().replace("!", "")).strip()


@dataclass(frozen=True)
class ProductAlias:
    """Special-case match: every token must appear in the normalized item name.

    Used for raw names that drift too far from the display name for a prefix
    match (e.g. a missing "the").
    """

    code: str
    tokens: tuple[str, ...]

    def matches(self, normalized_name: str) -> bool:
        return all(t in normalized_name for t in self.tokens)


@dataclass
class ProductCatalog:
    """Ordered product code -> display name mapping plus matching hints.

    Attributes:
        entries: Code -> display name, in column order.
        excluded: Phrases whose presence makes an item unmatchable
            (discontinued or sold-out products).
        aliases: Special-case matches checked before the prefix match.

    """

    entries: dict[str, str]
    excluded: tuple[str, ...] = ()
    aliases: tuple[ProductAlias, ...] = ()
    _by_length: list[tuple[str, str]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        # Longest display names first so a short name never wins as a prefix
        # of a longer one ("Moonlight Mayhem!" vs "... Extended Cut").
        self._by_length = sorted(
            ((code, _match_form(name)) for code, name in self.entries.items()),
            key=lambda item: len(item[1]),
            reverse=True,
        )

    @property
    def codes(self) -> list[str]:
        return list(self.entries)

    def display_name(self, code: str) -> str:
        """Expand a code; unknown values are returned unchanged."""
        return self.entries.get(code, code)

    def code_for(self, value: str) -> str | None:
        """Resolve a code or an exact display name back to its code."""
        value = value.strip()
        if value in self.entries:
            return value
        for code, name in self.entries.items():
            if name.lower() == value.lower():
                return code
        return None

    def match(self, raw_name: Any) -> str | None:
        """Map a free-text raw item name to a product code.

        Steps:
        1. Strip a trailing pack-size suffix ("6/750 ml", "12/375").
        2. Reject excluded products.
        3. Try the special-case aliases.
        4. Longest display name first, accept equality or a prefix match
           (raw names often carry extra suffixes like "Single Barrel").

        Returns:
            Product code, or None when the item is unrecognised or excluded.

        Examples:
            >>> DEFAULT_CATALOG.match("Moonlight Mayhem Extended Cut 6/750 ml")
            'MMEC'
            >>> DEFAULT_CATALOG.match("Moonlight Mayhem 2 White Port Wolf")
            'MMWP'

        """
        if is_missing(raw_name):
            return None
        name = str(raw_name).strip()
        if not name:
            return None

        for pattern in _PACK_SIZE_RES:
            name = pattern.sub("", name)
        normalized = _match_form(name)

        if any(phrase in normalized for phrase in self.excluded):
            return None

        for alias in self.aliases:
            if alias.matches(normalized):
                return alias.code

        for code, full in self._by_length:
            if normalized == full or normalized.startswith(full):
                return code

        return None

    def match_many(self, raw_names: Iterable[Any]) -> set[str]:
        return {code for code in (self.match(n) for n in raw_names) if code}


DEFAULT_CATALOG = ProductCatalog(
    entries={
        "MM": "Moonlight Mayhem!",
        "MMEC": "Moonlight Mayhem! Extended Cut",
        "RR": "Ryes of the Robots",
        "RREC": "Ryes of the Robot Extended Cut",
        "QUAD": "Quadraforce Blended Bourbon",
        "MMWP": "Moonlight Mayhem! 2 the White Port Wolf",
    },
    excluded=("town at the end of tomorrow",),
    aliases=(ProductAlias("MMWP", ("mayhem", "2", "white port wolf")),),
)


def load_catalog(path: Path) -> ProductCatalog:
    """Load a catalog from JSON.

    Expected shape::

        {
          "products": {"MM": "Moonlight Mayhem!", ...},
          "excluded": ["town at the end of tomorrow"],
          "aliases": [{"code": "MMWP", "tokens": ["mayhem", "2", "white port wolf"]}]
        }

    Raises:
        ConfigError: If the file is missing, unparseable, or malformed.

    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to load product catalog {path}: {e}") from e

    products = data.get("products") if isinstance(data, dict) else None
    if not isinstance(products, dict) or not products:
        raise ConfigError(f"Product catalog {path} must define a non-empty 'products' object")

    try:
        aliases = tuple(
            ProductAlias(code=str(a["code"]), tokens=tuple(str(t).lower() for t in a["tokens"]))
            for a in data.get("aliases", [])
        )
    except (KeyError, TypeError) as e:
        raise ConfigError(f"Malformed alias in product catalog {path}: {e}") from e

    for alias in aliases:
        if alias.code not in products:
            raise ConfigError(f"Alias refers to unknown product code {alias.code!r}")

    catalog = ProductCatalog(
        entries={str(k): str(v) for k, v in products.items()},
        excluded=tuple(str(p).lower() for p in data.get("excluded", [])),
        aliases=aliases,
    )
    logger.debug("Loaded %d products from %s", len(catalog.entries), path)
    return catalog
