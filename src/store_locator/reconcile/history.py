"""Stage 2: reconcile a freshly pivoted batch against the curated history.

Three datasets take part:

- **current**: export of the live sheet, with every manual correction.
- **original**: the first import that was loaded into the sheet.
- **new batch**: the latest pivot output.

A store present in the original import but missing from the current sheet
was removed by a curator on purpose. Such stores are *blocked*: a later
bulk import never brings them back, even when they look like valid new
data. Blocking is checked before the junk and duplicate checks.

Stores are matched by name+city+state rather than by address, because the
sheet's addresses may have been rewritten by the geocoding pass.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Iterable, Sequence

from store_locator.catalog import DEFAULT_CATALOG, ProductCatalog
from store_locator.etl.tables import read_store_table, write_store_table
from store_locator.metadata import StageMetadata, write_metadata
from store_locator.models import (
    ALREADY_PRESENT,
    DUPLICATE_IN_BATCH,
    JUNK,
    NEW,
    PREVIOUSLY_REMOVED,
    ClassificationResult,
    StoreRecord,
)
from store_locator.reconcile.duplicates import FirstSeenIndex, store_key
from store_locator.reconcile.junk import JunkRule, classify_junk, rules_for

if TYPE_CHECKING:
    from store_locator.config import DataPaths

logger = logging.getLogger(__name__)

STAGE = "reconcile"

# Removal context appended to blocked-stores.csv
BLOCKED_CONTEXT_COLUMNS = ["original_address", "original_row"]


@dataclass
class ReconciliationResult:
    """Every row of the new batch, bucketed.

    Attributes:
        new: Genuinely new stores, first occurrence of each key.
        blocked: Stores a curator previously removed.
        already_present: Stores already in the current sheet.
        junk: Non-store rows, with their reason code.
        duplicate: Later repeats of a new store within the batch.

    """

    new: list[ClassificationResult] = field(default_factory=list)
    blocked: list[ClassificationResult] = field(default_factory=list)
    already_present: list[ClassificationResult] = field(default_factory=list)
    junk: list[ClassificationResult] = field(default_factory=list)
    duplicate: list[ClassificationResult] = field(default_factory=list)
    removed_keys: set[str] = field(default_factory=set)

    def summary(self) -> dict[str, int]:
        return {
            "already_present": len(self.already_present),
            "blocked": len(self.blocked),
            "junk": len(self.junk),
            "duplicate": len(self.duplicate),
            "new": len(self.new),
        }

    @property
    def new_records(self) -> list[StoreRecord]:
        return [r.record for r in self.new]

    def classified(self) -> list[ClassificationResult]:
        """All rows in original batch order."""
        rows = self.new + self.blocked + self.already_present + self.junk + self.duplicate
        return sorted(rows, key=lambda r: r.position)


def keyset(records: Iterable[StoreRecord]) -> set[str]:
    return {store_key(r) for r in records}


def _first_seen(records: Sequence[StoreRecord] | None) -> dict[str, tuple[int, StoreRecord]]:
    context: dict[str, tuple[int, StoreRecord]] = {}
    for position, rec in enumerate(records or []):
        context.setdefault(store_key(rec), (position, rec))
    return context


def find_removed(
    original: Sequence[StoreRecord],
    current: Sequence[StoreRecord],
) -> list[StoreRecord]:
    """Original-import stores whose key no longer appears in the current sheet."""
    current_keys = keyset(current)
    return [r for r in original if store_key(r) not in current_keys]


def reconcile(
    current_keyset: set[str],
    original_keyset: set[str],
    new_batch: Sequence[StoreRecord],
    rules: Sequence[JunkRule] | None = None,
    original_records: Sequence[StoreRecord] | None = None,
    current_records: Sequence[StoreRecord] | None = None,
) -> ReconciliationResult:
    """Classify each row of a new batch against the curated history.

    Checks, in order, first hit wins:

    1. key in current sheet -> ``already_present``
    2. key removed by a curator (original minus current) -> ``blocked``
    3. junk rule matches -> ``junk``
    4. key already accepted earlier in this batch -> ``duplicate``
    5. otherwise -> ``new``

    Args:
        current_keyset: Composite keys of the live sheet.
        original_keyset: Composite keys of the original import.
        new_batch: New rows, in source order.
        rules: Junk rules; defaults to the built-in rules.
        original_records: Original-import records; when given, each blocked
            row carries the original record it matches as removal context.
        current_records: Current-sheet records; when given, each
            already-present row carries the sheet row it matches.

    Returns:
        ReconciliationResult.

    """
    removed_keys = original_keyset - current_keyset
    result = ReconciliationResult(removed_keys=removed_keys)

    removal_context = _first_seen(original_records)
    sheet_context = _first_seen(current_records)

    seen: FirstSeenIndex[StoreRecord] = FirstSeenIndex()

    for position, record in enumerate(new_batch):
        key = store_key(record)
        reason = None
        if key not in current_keyset and key not in removed_keys:
            reason = classify_junk(record, rules)

        if key in current_keyset:
            match = sheet_context.get(key)
            result.already_present.append(
                ClassificationResult(
                    record,
                    position,
                    ALREADY_PRESENT,
                    conflict=match[1] if match else None,
                    conflict_position=match[0] if match else None,
                )
            )
        elif key in removed_keys:
            context = removal_context.get(key)
            result.blocked.append(
                ClassificationResult(
                    record,
                    position,
                    PREVIOUSLY_REMOVED,
                    conflict=context[1] if context else None,
                    conflict_position=context[0] if context else None,
                )
            )
        elif reason is not None:
            logger.debug("Filtered junk (%s): %s | %s", reason, record.name, record.address)
            result.junk.append(ClassificationResult(record, position, JUNK, reason=reason))
        elif key in seen:
            logger.debug("Filtered dupe: %s | %s, %s", record.name, record.city, record.state)
            seen.observe(key, position, record)
            result.duplicate.append(
                ClassificationResult(
                    record,
                    position,
                    DUPLICATE_IN_BATCH,
                    conflict=seen.first(key),
                    conflict_position=seen.first_position(key),
                )
            )
        else:
            seen.observe(key, position, record)
            result.new.append(ClassificationResult(record, position, NEW))

    logger.info(
        "Reconciled %d rows: %s",
        len(new_batch),
        ", ".join(f"{k}={v}" for k, v in result.summary().items()),
    )
    return result


def _with_removal_context(result: ClassificationResult) -> StoreRecord:
    """Copy of a blocked row carrying the original-import row it matched."""
    original = result.conflict
    extra = dict(result.record.extra)
    extra["original_address"] = (
        ", ".join(p for p in (original.address, original.city, original.state) if p) if original else ""
    )
    # Row 1 of the original import is the header
    extra["original_row"] = (
        str(result.conflict_position + 2) if result.conflict_position is not None else ""
    )
    return replace(result.record, extra=extra)


def run_reconciliation(
    paths: DataPaths,
    catalog: ProductCatalog = DEFAULT_CATALOG,
    rules: Sequence[JunkRule] | None = None,
) -> ReconciliationResult:
    """Reconcile the pivot output against the sheet and write the results.

    Outputs:
        - ``paths.new_stores``: new stores, flag layout, empty coordinates.
          Only written when there is at least one new store.
        - ``paths.blocked_stores``: blocked rows for curator review, with the
          address and row of the original-import entry each one matched.

    """
    paths.ensure_dirs()
    inputs = [paths.current_sheet, paths.original_import, paths.pivot_csv]
    if rules is None:
        rules = rules_for(paths.junk_rules_json)

    try:
        current = read_store_table(paths.current_sheet, catalog)
        original = read_store_table(paths.original_import, catalog)
        new_batch = read_store_table(paths.pivot_csv, catalog)

        result = reconcile(
            keyset(current), keyset(original), new_batch, rules, original, current
        )
        logger.info("Stores previously removed: %d", len(result.removed_keys))

        if result.new:
            to_add = [
                StoreRecord(
                    name=r.name,
                    address=r.address,
                    city=r.city,
                    state=r.state,
                    zip=r.zip,
                    phone=r.phone,
                    type=r.type,
                    products=set(r.products),
                )
                for r in result.new_records
            ]
            write_store_table(to_add, paths.new_stores, catalog)
            logger.info("Wrote %d new stores to %s", len(to_add), paths.new_stores)
        else:
            logger.info("No new stores to add.")

        write_store_table(
            [_with_removal_context(r) for r in result.blocked],
            paths.blocked_stores,
            catalog,
            extra_columns=BLOCKED_CONTEXT_COLUMNS,
        )
    except Exception:
        write_metadata(paths.processed_dir, StageMetadata.now(STAGE, "failed", inputs=inputs))
        raise

    write_metadata(
        paths.processed_dir, StageMetadata.now(STAGE, "ok", result.summary(), inputs=inputs)
    )
    return result
