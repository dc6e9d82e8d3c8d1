"""
Dashboard Aggregations — roll measures and segmentation up for the views.

Measures are weekly series scoped to (measure, product, location). The
trending charts show one series per measure for the selected product family
and location, so records are combined week by week:
  - Quantities (demand, supply, inventory, ...) are summed.
  - Day-based measures (any id containing "days") are averaged, since
    summing days-of-supply across products is meaningless.

Segmentation rows are bucketed into the fixed 3x3 ABC/XYZ matrix.

Usage:
    from ingest.aggregation import aggregate_measures, aggregate_segmentation

    series = aggregate_measures(measures, products, "Beverages", "All Locations")
    matrix = aggregate_segmentation(segmentation, products, "All Products")
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ingest.records import (
    ABC_VALUES,
    WEEKS_PER_MEASURE,
    XYZ_VALUES,
    MeasureRecord,
    ProductRecord,
    SegmentationRecord,
)

ALL_PRODUCTS = "All Products"
ALL_LOCATIONS = "All Locations"
_ALL = "all"

SEGMENT_KEYS: list[str] = [f"{abc}{xyz}" for abc in ABC_VALUES for xyz in XYZ_VALUES]


@dataclass
class SegmentBucket:
    items: int = 0
    current_unit: float = 0.0
    current_financial: float = 0.0
    target_unit: float = 0.0
    target_financial: float = 0.0
    current_days: float = 0.0
    target_days: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "items": self.items,
            "currentUnit": self.current_unit,
            "currentFinancial": self.current_financial,
            "targetUnit": self.target_unit,
            "targetFinancial": self.target_financial,
            "currentDays": self.current_days,
            "targetDays": self.target_days,
        }


def filter_products_by_family(products: list[ProductRecord], family: str) -> list[str]:
    """Product ids belonging to a family, or every id for "All Products"."""
    if family in (ALL_PRODUCTS, _ALL):
        return [p.product_id for p in products]
    return [p.product_id for p in products if p.product_family == family]


def get_product_families(products: list[ProductRecord]) -> list[str]:
    return sorted({p.product_family for p in products})


def get_locations(measures: list[MeasureRecord]) -> list[str]:
    return sorted({m.location_id for m in measures})


def is_days_measure(measure_id: str) -> bool:
    return "days" in measure_id


def _combine_weeks(measure_id: str, records: list[MeasureRecord]) -> list[float]:
    weeks = np.array(
        [list(r.weeks[:WEEKS_PER_MEASURE]) + [0.0] * (WEEKS_PER_MEASURE - len(r.weeks)) for r in records],
        dtype=float,
    )
    week_index = np.arange(WEEKS_PER_MEASURE)
    present = week_index < np.array([[min(r.present_weeks, WEEKS_PER_MEASURE)] for r in records])
    valid = ~np.isnan(weeks) & present
    totals = np.where(valid, weeks, 0.0).sum(axis=0)

    if not is_days_measure(measure_id):
        return totals.tolist()

    # Mean per week over the numeric contributions only (missing trailing weeks
    # are not contributions); weeks with none stay 0
    counts = valid.sum(axis=0)
    means = np.divide(totals, counts, out=np.zeros(WEEKS_PER_MEASURE), where=counts > 0)
    return means.tolist()


def aggregate_measures(
    measures: list[MeasureRecord],
    products: list[ProductRecord],
    product_family: str,
    location: str,
) -> dict[str, list[float]]:
    """
    Combine measure records into one 20-week series per measure id.

    Args:
        measures: All loaded measure records
        products: Product catalog used to resolve the family filter
        product_family: Family name, or "All Products"
        location: Location id, or "All Locations"

    Returns:
        Mapping of measure_id -> 20 weekly values, in first-seen order.
    """
    product_ids = set(filter_products_by_family(products, product_family))
    filtered = [m for m in measures if m.product_id in product_ids]
    if location not in (ALL_LOCATIONS, _ALL):
        filtered = [m for m in filtered if m.location_id == location]

    grouped: dict[str, list[MeasureRecord]] = {}
    for record in filtered:
        grouped.setdefault(record.measure_id, []).append(record)

    return {measure_id: _combine_weeks(measure_id, records) for measure_id, records in grouped.items()}


def aggregate_segmentation(
    segmentation: list[SegmentationRecord],
    products: list[ProductRecord],
    product_family: str,
) -> dict[str, SegmentBucket]:
    """
    Bucket segmentation rows into the 9 ABC/XYZ cells.

    Every key AX..CZ is always present. Unit and financial values are
    summed; days of supply are averaged per item.
    """
    result = {key: SegmentBucket() for key in SEGMENT_KEYS}
    product_ids = set(filter_products_by_family(products, product_family))

    for record in segmentation:
        if record.product_id not in product_ids:
            continue
        bucket = result.get(record.segment)
        if bucket is None:
            continue
        bucket.items += 1
        bucket.current_unit += record.on_hand_unit
        bucket.current_financial += record.on_hand_financial
        bucket.target_unit += record.target_unit
        bucket.target_financial += record.target_financial
        bucket.current_days += record.on_hand_days
        bucket.target_days += record.target_days

    for bucket in result.values():
        if bucket.items > 0:
            bucket.current_days = bucket.current_days / bucket.items
            bucket.target_days = bucket.target_days / bucket.items

    return result
