"""Tests for duplicate detection and history-aware reconciliation."""

import json
from pathlib import Path
from typing import Callable

import pytest

from store_locator.config import DataPaths
from store_locator.etl.tables import read_store_table
from store_locator.exceptions import DataQualityError
from store_locator.metadata import read_metadata
from store_locator.models import DUPLICATE_IN_BATCH, PREVIOUSLY_REMOVED, StoreRecord
from store_locator.reconcile import junk
from store_locator.reconcile.duplicates import FirstSeenIndex, find_duplicates
from store_locator.reconcile.history import (
    find_removed,
    keyset,
    reconcile,
    run_reconciliation,
)

SHEET_HEADER = "store_name,address,city,state,zip,phone,type,lat,lng,products"
FLAGS_HEADER = "store_name,address,city,state,zip,phone,type,lat,lng,MM,MMEC,RR,RREC,QUAD,MMWP"


def store(name: str, address: str, city: str = "Austin", state: str = "TX") -> StoreRecord:
    return StoreRecord(name=name, address=address, city=city, state=state)


class TestFirstSeenIndex:
    def test_first_item_is_never_displaced(self) -> None:
        index: FirstSeenIndex[str] = FirstSeenIndex()
        assert index.observe("a", 0, "first") is None
        assert index.observe("b", 1, "other") is None
        assert index.observe("a", 2, "second") == 0

        assert index.first("a") == "first"
        assert index.items() == ["first", "other"]
        assert len(index) == 2
        assert [(c.position, c.first_position) for c in index.conflicts] == [(2, 0)]


class TestFindDuplicates:
    @pytest.fixture
    def records(self) -> list[StoreRecord]:
        return [
            store("Joe's Bar", "1 Main St"),
            store("JOES BAR", "1 Main Street", city="austin", state="tx"),
            store("Corner Bar", "9 Elm St"),
        ]

    def test_later_occurrence_is_flagged(self, records: list[StoreRecord]) -> None:
        dups = find_duplicates(records)

        assert len(dups) == 1
        assert dups[0].position == 1
        assert dups[0].first_position == 0
        assert dups[0].record is records[1]
        assert dups[0].first_record is records[0]

    def test_order_decides_which_row_is_flagged(self, records: list[StoreRecord]) -> None:
        reversed_records = list(reversed(records))
        dups = find_duplicates(reversed_records)

        assert len(dups) == 1
        assert dups[0].record is records[0]
        assert dups[0].position == 2
        assert dups[0].first_position == 1

    def test_no_duplicates(self) -> None:
        assert find_duplicates([store("A", "1 Main"), store("B", "1 Main")]) == []


class TestReconcile:
    @pytest.fixture
    def original(self) -> list[StoreRecord]:
        return [
            store("Corner Bar", "1 Main St"),
            store("Sample Shop", "2 Main St"),
        ]

    @pytest.fixture
    def current(self) -> list[StoreRecord]:
        # Curator deleted "Sample Shop" and rewrote the address of Corner Bar
        return [store("Corner Bar", "1 Main Street")]

    @pytest.fixture
    def batch(self) -> list[StoreRecord]:
        return [
            store("CORNER BAR", "1 Main St"),
            store("Sample Shop", "2 Main St"),
            store("Filmland Spirits", "3 Main St"),
            store("New Place", "4 Elm St", city="Dallas"),
            store("New Place!", "4 Elm Street", city="dallas", state="tx"),
        ]

    def test_each_row_lands_in_one_bucket(
        self, original: list[StoreRecord], current: list[StoreRecord], batch: list[StoreRecord]
    ) -> None:
        result = reconcile(keyset(current), keyset(original), batch, original_records=original)

        assert result.summary() == {
            "already_present": 1,
            "blocked": 1,
            "junk": 1,
            "duplicate": 1,
            "new": 1,
        }
        assert [r.position for r in result.already_present] == [0]
        assert [r.position for r in result.blocked] == [1]
        assert [r.position for r in result.junk] == [2]
        assert [r.position for r in result.new] == [3]
        assert [r.position for r in result.duplicate] == [4]
        assert [r.position for r in result.classified()] == [0, 1, 2, 3, 4]

    def test_blocked_dominates_junk(
        self, original: list[StoreRecord], current: list[StoreRecord], batch: list[StoreRecord]
    ) -> None:
        """"Sample Shop" matches the samples rule but was removed by a curator."""
        result = reconcile(keyset(current), keyset(original), batch, original_records=original)

        blocked = result.blocked[0]
        assert blocked.classification == PREVIOUSLY_REMOVED
        assert blocked.reason is None
        assert blocked.conflict is original[1]
        assert blocked.conflict_position == 1

    def test_junk_reason_and_duplicate_context(
        self, original: list[StoreRecord], current: list[StoreRecord], batch: list[StoreRecord]
    ) -> None:
        result = reconcile(keyset(current), keyset(original), batch)

        assert result.junk[0].reason == junk.OWN_COMPANY
        dup = result.duplicate[0]
        assert dup.classification == DUPLICATE_IN_BATCH
        assert dup.conflict is batch[3]
        assert dup.conflict_position == 3
        assert result.removed_keys == {"sampleshop|austin|tx"}

    def test_already_present_points_at_sheet_row(
        self, original: list[StoreRecord], current: list[StoreRecord], batch: list[StoreRecord]
    ) -> None:
        result = reconcile(
            keyset(current), keyset(original), batch, original_records=original, current_records=current
        )

        present = result.already_present[0]
        assert present.record is batch[0]
        assert present.conflict is current[0]
        assert present.conflict_position == 0

    def test_already_present_without_sheet_records(self) -> None:
        result = reconcile({"cornerbar|austin|tx"}, set(), [store("CORNER BAR", "1 Main St")])
        assert result.already_present[0].conflict is None
        assert result.already_present[0].conflict_position is None

    def test_repeated_junk_stays_junk(self) -> None:
        batch = [store("Filmland Spirits", "3 Main St"), store("Filmland Spirits", "3 Main St")]
        result = reconcile(set(), set(), batch)
        assert len(result.junk) == 2
        assert result.duplicate == []

    def test_empty_batch(self) -> None:
        result = reconcile({"a|b|c"}, {"a|b|c"}, [])
        assert sum(result.summary().values()) == 0

    def test_find_removed(self, original: list[StoreRecord], current: list[StoreRecord]) -> None:
        removed = find_removed(original, current)
        assert [r.name for r in removed] == ["Sample Shop"]


class TestRunReconciliation:
    @pytest.fixture
    def staged(
        self, data_paths: DataPaths, write_csv: Callable[[Path, str, list[str]], Path]
    ) -> DataPaths:
        write_csv(
            data_paths.original_import,
            FLAGS_HEADER,
            [
                "Corner Bar,1 Main St,Austin,TX,78701,,On-Premise,,,TRUE,FALSE,FALSE,FALSE,FALSE,FALSE",
                "Sample Shop,2 Main St,Austin,TX,78701,,Off-Premise,,,TRUE,FALSE,FALSE,FALSE,FALSE,FALSE",
            ],
        )
        write_csv(
            data_paths.current_sheet,
            SHEET_HEADER,
            [
                'Corner Bar,1 Main Street,Austin,TX,78701,(512) 555-1234,On-Premise,30.26,-97.74,"Moonlight Mayhem!"',
            ],
        )
        write_csv(
            data_paths.pivot_csv,
            FLAGS_HEADER,
            [
                "Corner Bar,1 Main St,Austin,TX,78701,,On-Premise,,,TRUE,FALSE,TRUE,FALSE,FALSE,FALSE",
                "Sample Shop,2 Main St,Austin,TX,78701,,Off-Premise,,,TRUE,FALSE,FALSE,FALSE,FALSE,FALSE",
                "New Place,4 Elm St,Dallas,TX,75201,(214) 555-0000,Off-Premise,,,FALSE,FALSE,FALSE,FALSE,TRUE,FALSE",
            ],
        )
        return data_paths

    def test_writes_new_and_blocked_stores(self, staged: DataPaths) -> None:
        result = run_reconciliation(staged)

        assert result.summary()["new"] == 1
        new = read_store_table(staged.new_stores)
        assert [r.name for r in new] == ["New Place"]
        assert new[0].products == {"QUAD"}
        assert new[0].phone == "(214) 555-0000"
        assert not new[0].has_coordinates

        blocked = read_store_table(staged.blocked_stores)
        assert [r.name for r in blocked] == ["Sample Shop"]
        assert blocked[0].extra == {"original_address": "2 Main St, Austin, TX", "original_row": "3"}

        meta = read_metadata(staged.processed_dir, "reconcile")
        assert meta is not None
        assert meta.status == "ok"
        assert meta.counts["blocked"] == 1

    def test_no_new_stores_skips_output(
        self, staged: DataPaths, write_csv: Callable[[Path, str, list[str]], Path]
    ) -> None:
        write_csv(
            staged.pivot_csv,
            FLAGS_HEADER,
            ["Corner Bar,1 Main St,Austin,TX,78701,,On-Premise,,,TRUE,FALSE,FALSE,FALSE,FALSE,FALSE"],
        )
        result = run_reconciliation(staged)

        assert result.summary()["already_present"] == 1
        assert not staged.new_stores.exists()
        assert staged.blocked_stores.exists()

    def test_junk_rules_override_file(self, staged: DataPaths) -> None:
        staged.junk_rules_json.write_text(
            json.dumps({"personal_names": ["new place"]}), encoding="utf-8"
        )
        result = run_reconciliation(staged)

        assert result.summary()["new"] == 0
        assert result.junk[0].reason == junk.PERSONAL_NAME

    def test_missing_input_fails_with_metadata(self, data_paths: DataPaths) -> None:
        with pytest.raises(DataQualityError, match="not found"):
            run_reconciliation(data_paths)

        meta = read_metadata(data_paths.processed_dir, "reconcile")
        assert meta is not None
        assert meta.status == "failed"
