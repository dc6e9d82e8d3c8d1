"""
Tests for measure and segmentation aggregation.

Covers:
  - Family / location filtering
  - Sum vs. mean combination per week
  - The fixed 9-bucket ABC/XYZ matrix
"""

import math
import random

import pytest

from ingest.aggregation import (
    SEGMENT_KEYS,
    aggregate_measures,
    aggregate_segmentation,
    filter_products_by_family,
    get_locations,
    get_product_families,
)
from ingest.records import MeasureRecord, ProductRecord, SegmentationRecord

PRODUCTS = [
    ProductRecord("Beverages", "P1"),
    ProductRecord("Beverages", "P2"),
    ProductRecord("Snacks", "P3"),
]


def measure(measure_id: str, product_id: str, location_id: str, *values: float) -> MeasureRecord:
    weeks = list(values) + [0.0] * (20 - len(values))
    return MeasureRecord(measure_id, measure_id, product_id, location_id, tuple(weeks))


def segment(product_id: str, abc: str, xyz: str, **values: float) -> SegmentationRecord:
    return SegmentationRecord(
        product_id=product_id,
        abc_value=abc,
        xyz_value=xyz,
        on_hand_unit=values.get("on_hand_unit", 0.0),
        on_hand_financial=values.get("on_hand_financial", 0.0),
        target_unit=values.get("target_unit", 0.0),
        target_financial=values.get("target_financial", 0.0),
        on_hand_days=values.get("on_hand_days", 0.0),
        target_days=values.get("target_days", 0.0),
    )


# ── Catalog helpers ────────────────────────────────────────────────────


class TestCatalogHelpers:
    def test_all_products_returns_every_id(self):
        assert filter_products_by_family(PRODUCTS, "All Products") == ["P1", "P2", "P3"]
        assert filter_products_by_family(PRODUCTS, "all") == ["P1", "P2", "P3"]

    def test_family_filter(self):
        assert filter_products_by_family(PRODUCTS, "Snacks") == ["P3"]
        assert filter_products_by_family(PRODUCTS, "Unknown") == []

    def test_families_and_locations_are_sorted_unique(self):
        measures = [measure("d", "P1", "L2"), measure("d", "P2", "L1"), measure("d", "P3", "L2")]
        assert get_product_families(PRODUCTS) == ["Beverages", "Snacks"]
        assert get_locations(measures) == ["L1", "L2"]


# ── Measures ───────────────────────────────────────────────────────────


class TestAggregateMeasures:
    def test_duplicate_rows_are_summed(self):
        measures = [
            measure("demand_unit_value", "P1", "L1", 10),
            measure("demand_unit_value", "P1", "L1", 20),
        ]
        result = aggregate_measures(measures, [ProductRecord("F", "P1")], "All Products", "All Locations")
        assert result["demand_unit_value"][0] == 30
        assert len(result["demand_unit_value"]) == 20

    def test_days_measures_are_averaged(self):
        measures = [
            measure("inventory_days", "P1", "L1", 10, 4),
            measure("inventory_days", "P2", "L2", 30, 8),
        ]
        result = aggregate_measures(measures, PRODUCTS, "All Products", "All Locations")
        assert result["inventory_days"][:2] == [20, 6]

    def test_days_average_excludes_non_numeric_weeks(self):
        measures = [
            measure("inventory_days", "P1", "L1", 10, math.nan),
            measure("inventory_days", "P2", "L1", math.nan, math.nan),
            measure("inventory_days", "P3", "L1", 20, math.nan),
        ]
        result = aggregate_measures(measures, PRODUCTS, "All Products", "All Locations")
        assert result["inventory_days"][0] == 15
        assert result["inventory_days"][1] == 0

    def test_sum_treats_nan_as_zero(self):
        measures = [measure("supply", "P1", "L1", math.nan), measure("supply", "P2", "L1", 4)]
        result = aggregate_measures(measures, PRODUCTS, "All Products", "All Locations")
        assert result["supply"][0] == 4

    def test_family_and_location_filters(self):
        measures = [
            measure("demand", "P1", "L1", 1),
            measure("demand", "P2", "L2", 2),
            measure("demand", "P3", "L1", 4),
        ]
        assert aggregate_measures(measures, PRODUCTS, "Beverages", "All Locations")["demand"][0] == 3
        assert aggregate_measures(measures, PRODUCTS, "Beverages", "L1")["demand"][0] == 1
        assert aggregate_measures(measures, PRODUCTS, "All Products", "L1")["demand"][0] == 5

    def test_unmatched_filter_gives_no_series(self):
        measures = [measure("demand", "P1", "L1", 1)]
        assert aggregate_measures(measures, PRODUCTS, "Snacks", "All Locations") == {}

    def test_products_outside_catalog_are_ignored(self):
        measures = [measure("demand", "P1", "L1", 1), measure("demand", "ORPHAN", "L1", 100)]
        assert aggregate_measures(measures, PRODUCTS, "All Products", "All Locations")["demand"][0] == 1

    @pytest.mark.parametrize("seed", range(5))
    def test_mean_is_bounded_and_sum_is_monotonic(self, seed):
        rng = random.Random(seed)
        days = [measure("cover_days", f"P{i % 3 + 1}", "L1", *[rng.uniform(0, 60) for _ in range(20)]) for i in range(6)]
        units = [measure("demand", f"P{i % 3 + 1}", "L1", *[rng.uniform(0, 500) for _ in range(20)]) for i in range(6)]

        result = aggregate_measures(days + units, PRODUCTS, "All Products", "All Locations")

        for week in range(20):
            day_values = [m.weeks[week] for m in days]
            assert min(day_values) - 1e-9 <= result["cover_days"][week] <= max(day_values) + 1e-9
            assert result["demand"][week] >= max(m.weeks[week] for m in units)


# ── Segmentation ───────────────────────────────────────────────────────


class TestAggregateSegmentation:
    def test_single_row_scenario(self):
        products = [ProductRecord("F", "P1")]
        rows = [segment("P1", "A", "X", on_hand_unit=100, target_unit=80)]

        result = aggregate_segmentation(rows, products, "All Products")

        assert result["AX"].items == 1
        assert result["AX"].current_unit == 100
        assert result["AX"].target_unit == 80
        for key in SEGMENT_KEYS:
            if key != "AX":
                assert result[key].items == 0

    def test_empty_input_has_all_nine_keys(self):
        result = aggregate_segmentation([], [], "All Products")
        assert list(result) == ["AX", "AY", "AZ", "BX", "BY", "BZ", "CX", "CY", "CZ"]
        assert all(bucket.items == 0 and bucket.current_days == 0 for bucket in result.values())

    def test_days_are_averaged_per_item(self):
        rows = [
            segment("P1", "B", "Y", on_hand_days=10, target_days=8, on_hand_financial=100),
            segment("P2", "B", "Y", on_hand_days=30, target_days=12, on_hand_financial=50),
        ]
        bucket = aggregate_segmentation(rows, PRODUCTS, "All Products")["BY"]
        assert bucket.items == 2
        assert bucket.current_days == 20
        assert bucket.target_days == 10
        assert bucket.current_financial == 150

    def test_item_counts_match_family_filter(self):
        rows = [segment("P1", "A", "X"), segment("P2", "C", "Z"), segment("P3", "B", "Y")]
        result = aggregate_segmentation(rows, PRODUCTS, "Beverages")
        assert sum(b.items for b in result.values()) == 2
        assert result["BY"].items == 0

    def test_to_dict_uses_dashboard_keys(self):
        rows = [segment("P1", "A", "X", on_hand_unit=1, target_financial=2)]
        as_dict = aggregate_segmentation(rows, PRODUCTS, "All Products")["AX"].to_dict()
        assert as_dict["items"] == 1
        assert as_dict["currentUnit"] == 1
        assert as_dict["targetFinancial"] == 2
        assert set(as_dict) == {
            "items",
            "currentUnit",
            "currentFinancial",
            "targetUnit",
            "targetFinancial",
            "currentDays",
            "targetDays",
        }


def test_missing_trailing_weeks_only_leave_the_days_mean():
    full = MeasureRecord("cover_days", "Cover", "P1", "L1", tuple([10.0] * 20))
    short = MeasureRecord("cover_days", "Cover", "P2", "L1", tuple([30.0] * 10 + [0.0] * 10), present_weeks=10)
    parsed_zero = MeasureRecord("cover_days", "Cover", "P3", "L1", tuple([0.0] * 20))

    assert aggregate_measures([full, short], PRODUCTS, "All Products", "All Locations")["cover_days"][15] == 10
    # A present but unparseable week counts as 0
    assert aggregate_measures([full, parsed_zero], PRODUCTS, "All Products", "All Locations")["cover_days"][15] == 5
