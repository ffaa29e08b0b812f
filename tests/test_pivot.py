"""Tests for pivoting raw line items into one row per store."""

from pathlib import Path

import pandas as pd
import pytest

from store_locator.config import DataPaths
from store_locator.etl.pivot import (
    COL_ACCOUNT,
    COL_ADDRESS,
    COL_CITY,
    COL_ITEM,
    COL_PHONE,
    COL_PREMISE,
    COL_STATE,
    COL_STATE_FALLBACK,
    COL_ZIP,
    pivot,
    premise_type,
    run_pivot,
)
from store_locator.etl.tables import read_store_table
from store_locator.exceptions import DataQualityError
from store_locator.metadata import read_metadata
from store_locator.models import OFF_PREMISE, ON_PREMISE

RAW_COLUMNS = [
    COL_ACCOUNT,
    COL_ADDRESS,
    COL_CITY,
    COL_STATE,
    COL_STATE_FALLBACK,
    COL_ZIP,
    COL_PHONE,
    COL_ITEM,
    COL_PREMISE,
]


@pytest.fixture
def raw_line_items() -> pd.DataFrame:
    """Raw export rows: two lines for one store, a subtotal and a malformed row."""
    rows = [
        ["Corner Bar", "1 Main St", "Austin", "TX", "", "78701", "512-555-1234",
         "Moonlight Mayhem! 6/750 ml", "ON"],
        ["Corner Bar & Grill", "1 MAIN ST", "austin", "tx", "", "78701", "",
         "Ryes of the Robots 6/750 ml", "OFF"],
        ["Total", "Total", "", "", "", "", "", "", ""],
        ["Lost Shop", "", "Austin", "TX", "", "78701", "", "Moonlight Mayhem! 6/750 ml", "ON"],
        ["Harbor Liquor", "9 Elm St", "Oakland", "", "CA", "94601", "",
         "Town at the End of Tomorrow 6/750 ml", ""],
    ]
    return pd.DataFrame(rows, columns=RAW_COLUMNS)


class TestPivot:
    def test_groups_lines_by_location(self, raw_line_items: pd.DataFrame) -> None:
        result = pivot(raw_line_items)

        assert len(result.stores) == 2
        assert result.line_items == 3
        assert result.skipped_rows == 2

    def test_first_values_win_and_products_union(self, raw_line_items: pd.DataFrame) -> None:
        store = pivot(raw_line_items).stores[0]

        assert store.name == "Corner Bar"
        assert store.address == "1 Main St"
        assert store.phone == "(512) 555-1234"
        assert store.type == ON_PREMISE
        assert store.products == {"MM", "RR"}
        assert store.latitude is None

    def test_state_fallback_and_unmatched_items(self, raw_line_items: pd.DataFrame) -> None:
        result = pivot(raw_line_items)
        harbor = result.stores[1]

        assert harbor.state == "CA"
        assert harbor.products == set()
        assert harbor.type == ""
        assert result.unmatched_items == {"Town at the End of Tomorrow 6/750 ml": 1}

    def test_product_counts(self, raw_line_items: pd.DataFrame) -> None:
        counts = pivot(raw_line_items).product_counts()
        assert counts == {"MM": 1, "MMEC": 0, "RR": 1, "RREC": 0, "QUAD": 0, "MMWP": 0}

    def test_missing_columns(self) -> None:
        with pytest.raises(DataQualityError, match="Missing required raw columns"):
            pivot(pd.DataFrame({COL_ACCOUNT: ["Corner Bar"]}))

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("ON", ON_PREMISE), ("off", OFF_PREMISE), (" On ", ON_PREMISE), ("", ""), ("Both", "")],
    )
    def test_premise_type(self, value: str, expected: str) -> None:
        assert premise_type(value) == expected


class TestRunPivot:
    def test_csv_export(self, tmp_path: Path, raw_line_items: pd.DataFrame) -> None:
        paths = DataPaths.from_root(tmp_path / "data", "export.csv")
        paths.ensure_dirs()
        raw_line_items.to_csv(paths.raw_export, index=False)

        result = run_pivot(paths)

        stores = read_store_table(paths.pivot_csv)
        assert [s.name for s in stores] == ["Corner Bar", "Harbor Liquor"]
        assert stores[0].products == {"MM", "RR"}
        assert stores[0].zip == "78701"

        header = paths.pivot_csv.read_text(encoding="utf-8").splitlines()[0]
        assert header == "store_name,address,city,state,zip,phone,type,lat,lng,MM,MMEC,RR,RREC,QUAD,MMWP"

        meta = read_metadata(paths.clean_dir, "pivot")
        assert meta is not None
        assert meta.status == "ok"
        assert meta.counts["stores"] == len(result.stores) == 2

    def test_xlsx_export_with_title_row(self, tmp_path: Path) -> None:
        openpyxl = pytest.importorskip("openpyxl")
        paths = DataPaths.from_root(tmp_path / "data", "export.xlsx")
        paths.ensure_dirs()

        wb = openpyxl.Workbook()
        ws = wb.active
        ws.append(["On and Off Premise Full Store List"])
        ws.append(RAW_COLUMNS)
        ws.append(["Corner Bar", "1 Main St", "Austin", "TX", None, 78701, 5125551234,
                   "Quadraforce Blended Bourbon", "OFF"])
        wb.save(paths.raw_export)

        result = run_pivot(paths)

        store = result.stores[0]
        assert store.zip == "78701"
        assert store.phone == "(512) 555-1234"
        assert store.type == OFF_PREMISE
        assert store.products == {"QUAD"}

    def test_missing_export(self, data_paths: DataPaths) -> None:
        with pytest.raises(DataQualityError, match="Raw export not found"):
            run_pivot(data_paths)

        meta = read_metadata(data_paths.clean_dir, "pivot")
        assert meta is not None
        assert meta.status == "failed"
