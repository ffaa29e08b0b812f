"""Core data types shared by all pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field

# Store types as they appear in the sheet and the published feed
ON_PREMISE = "On-Premise"
OFF_PREMISE = "Off-Premise"
STORE_TYPES = (ON_PREMISE, OFF_PREMISE, "")

# Classification buckets produced by reconciliation and review
ALREADY_PRESENT = "already_present"
PREVIOUSLY_REMOVED = "previously_removed"
DUPLICATE_IN_BATCH = "duplicate_in_batch"
JUNK = "junk"
NEW = "new"
CLASSIFICATIONS = (ALREADY_PRESENT, PREVIOUSLY_REMOVED, DUPLICATE_IN_BATCH, JUNK, NEW)


@dataclass
class StoreRecord:
    """One physical retail or hospitality location.

    Records carry no numeric ID. Identity is derived from normalized
    name+city+state (across datasets) or address+city+state+zip (within a
    raw export), see ``store_locator.etl.utils``.

    Attributes:
        name: Retail account name.
        address: Street address, free text.
        city: City, free text.
        state: State, free text.
        zip: Postal code, free text.
        phone: "(XXX) XXX-XXXX" or empty.
        type: "On-Premise", "Off-Premise" or empty.
        latitude: Latitude, None until geocoded.
        longitude: Longitude, None until geocoded.
        products: Product catalog codes.
        extra: Bookkeeping columns carried through untouched (e.g. "normalized").

    """

    name: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    phone: str = ""
    type: str = ""
    latitude: float | None = None
    longitude: float | None = None
    products: set[str] = field(default_factory=set)
    extra: dict[str, str] = field(default_factory=dict)

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass
class ClassificationResult:
    """Per-row tag produced by reconciliation.

    Attributes:
        record: The classified record.
        position: 0-based position of the record in its input file.
        classification: One of ``CLASSIFICATIONS``.
        reason: Junk reason code, only for ``junk``.
        conflict: The conflicting record: the first occurrence for
            ``duplicate_in_batch``, the original-import record (removal
            context) for ``previously_removed``.
        conflict_position: Position of ``conflict`` in its own file, if known.

    """

    record: StoreRecord
    position: int
    classification: str
    reason: str | None = None
    conflict: StoreRecord | None = None
    conflict_position: int | None = None
