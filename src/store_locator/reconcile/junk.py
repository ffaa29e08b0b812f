"""Junk classifier: flags rows that are not genuine points of sale.

Classification is an ordered list of rules, each a predicate plus a reason
code. The first matching rule wins, so a row that matches several patterns
(a sample shipment booked at the company's own address, say) always gets
the reason of the earliest rule.

The domain-specific pattern lists (company names, distributors, personal
names, online retailers) live in ``JunkConfig`` and can be loaded from a
JSON file, keeping tuning separate from the rule order.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Callable, Sequence

from store_locator.exceptions import ConfigError
from store_locator.models import StoreRecord

logger = logging.getLogger(__name__)

# Reason codes, in rule order
SAMPLES = "samples"
BREAKAGE = "breakage"
BILL_BACK = "bill_back"
OWN_COMPANY = "own_company"
HQ_ADDRESS = "hq_address"
DISTRIBUTOR_OR_WAREHOUSE = "distributor_or_warehouse"
PERSONAL_NAME = "personal_name"
NO_ADDRESS = "no_address"
CORPORATE_ADDRESS = "corporate_address"
ONLINE_RETAILER = "online_retailer"

REASON_DESCRIPTIONS = {
    SAMPLES: "Samples",
    BREAKAGE: "Breakage",
    BILL_BACK: "Bill back",
    OWN_COMPANY: "Own company",
    HQ_ADDRESS: "Company HQ address",
    DISTRIBUTOR_OR_WAREHOUSE: "Distributor / warehouse",
    PERSONAL_NAME: "Personal name, not a store",
    NO_ADDRESS: "No address",
    CORPORATE_ADDRESS: "Corporate name instead of street address",
    ONLINE_RETAILER: "Online retailer",
}

# Address placeholders left behind by spreadsheet subtotal rows
EMPTY_ADDRESS_VALUES = ("", ".", "Total")

_WAREHOUSE_RE = re.compile(r"warehouse$", re.IGNORECASE)
_LEADING_LETTER_RE = re.compile(r"^[a-zA-Z]")
_DIGIT_RE = re.compile(r"\d")

# predicate(lower-cased name, raw address) -> bool
JunkPredicate = Callable[[str, str], bool]


@dataclass
class JunkConfig:
    """Domain pattern lists for the junk rules.

    All patterns are matched against lower-cased text.

    Attributes:
        company_name_patterns: Substrings identifying the operating company's
            own accounts.
        company_name_exclusions: Substrings that veto an own-company match
            (a retailer whose account name mentions the company).
        hq_street_tokens: Street-name tokens of the company's HQ address.
        distributor_patterns: Substrings identifying distributor accounts.
        personal_names: Exact account names that are people, not businesses.
        online_retailers: Exact account names of online retailers.

    """

    company_name_patterns: list[str] = field(default_factory=lambda: ["filmland spirits"])
    company_name_exclusions: list[str] = field(default_factory=lambda: ["total wine"])
    hq_street_tokens: list[str] = field(default_factory=lambda: ["cantlay"])
    distributor_patterns: list[str] = field(default_factory=lambda: ["quail distribut"])
    personal_names: list[str] = field(default_factory=lambda: ["eric crane", "thomas davis"])
    online_retailers: list[str] = field(default_factory=lambda: ["sendsips", "wine.com"])

    def __post_init__(self) -> None:
        for f in fields(self):
            setattr(self, f.name, [str(v).strip().lower() for v in getattr(self, f.name)])


@dataclass(frozen=True)
class JunkRule:
    """One ordered classification rule."""

    reason: str
    predicate: JunkPredicate

    @property
    def description(self) -> str:
        return REASON_DESCRIPTIONS.get(self.reason, self.reason)


def _contains_any(text: str, patterns: Sequence[str]) -> bool:
    return any(p and p in text for p in patterns)


def _is_corporate_address(address: str) -> bool:
    # Starts with a letter, mentions llc/inc, has no street number.
    # A named plaza such as "Acme Holdings Inc Plaza" also matches.
    lower = address.lower()
    return (
        bool(_LEADING_LETTER_RE.match(address))
        and (" llc" in lower or " inc" in lower)
        and not _DIGIT_RE.search(address)
    )


def build_rules(config: JunkConfig | None = None) -> list[JunkRule]:
    """Build the ordered junk rules for a configuration.

    Args:
        config: Pattern lists; defaults to ``JunkConfig()``.

    Returns:
        Rules in precedence order.

    """
    cfg = config or JunkConfig()
    personal = set(cfg.personal_names)
    online = set(cfg.online_retailers)

    def own_company(name: str, _address: str) -> bool:
        return _contains_any(name, cfg.company_name_patterns) and not _contains_any(
            name, cfg.company_name_exclusions
        )

    def distributor_or_warehouse(name: str, _address: str) -> bool:
        if _contains_any(name, cfg.distributor_patterns):
            return True
        return bool(_WAREHOUSE_RE.search(name)) and "beverage" not in name

    return [
        JunkRule(SAMPLES, lambda name, _a: "sample" in name),
        JunkRule(BREAKAGE, lambda name, _a: "breakage" in name),
        JunkRule(BILL_BACK, lambda name, _a: "bill back" in name or "billback" in name),
        JunkRule(OWN_COMPANY, own_company),
        JunkRule(HQ_ADDRESS, lambda _n, address: _contains_any(address.lower(), cfg.hq_street_tokens)),
        JunkRule(DISTRIBUTOR_OR_WAREHOUSE, distributor_or_warehouse),
        JunkRule(PERSONAL_NAME, lambda name, _a: name in personal),
        JunkRule(NO_ADDRESS, lambda _n, address: address in EMPTY_ADDRESS_VALUES),
        JunkRule(CORPORATE_ADDRESS, lambda _n, address: _is_corporate_address(address)),
        JunkRule(ONLINE_RETAILER, lambda name, _a: name in online),
    ]


DEFAULT_RULES = build_rules()


def classify_junk(
    record: StoreRecord,
    rules: Sequence[JunkRule] | None = None,
) -> str | None:
    """Return the reason code of the first matching rule, or None.

    Pure and deterministic: the result depends only on the record's name
    and address and on the rule list.

    Args:
        record: Record to classify.
        rules: Ordered rules; defaults to ``DEFAULT_RULES``.

    Examples:
        >>> classify_junk(StoreRecord(name="Sample - Filmland Spirits HQ",
        ...                           address="100 Cantlay St"))
        'samples'

    """
    name = (record.name or "").strip().lower()
    address = (record.address or "").strip()
    for rule in rules if rules is not None else DEFAULT_RULES:
        if rule.predicate(name, address):
            return rule.reason
    return None


def describe_reason(reason: str) -> str:
    return REASON_DESCRIPTIONS.get(reason, reason)


def load_junk_config(path: Path) -> JunkConfig:
    """Load junk pattern lists from a JSON file.

    Keys are the ``JunkConfig`` field names; missing keys keep their
    defaults.

    Raises:
        ConfigError: If the file cannot be read or has unknown keys or
            non-list values.

    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to load junk rules {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Junk rules {path} must be a JSON object")

    known = {f.name for f in fields(JunkConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown keys in junk rules {path}: {unknown}")

    for key, value in data.items():
        if not isinstance(value, list):
            raise ConfigError(f"Junk rules key {key!r} must be a list of strings")

    logger.debug("Loaded junk rules from %s", path)
    return JunkConfig(**data)


def rules_for(path: Path | None) -> list[JunkRule]:
    """Rules from an optional JSON override; defaults when the file is absent."""
    if path is not None and path.exists():
        return build_rules(load_junk_config(path))
    return DEFAULT_RULES
