"""
Typed dashboard records.

One dataclass per CSV dataset. Columns are positional; see the loaders in
ingest.loaders for the row mapping and defaulting rules.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any, Literal, get_args

WEEKS_PER_MEASURE = 20

RecommendationSource = Literal["recommendation", "user_created_action"]
Severity = Literal["low", "medium", "high", "critical"]
RecommendationStatus = Literal["open", "accepted", "rejected"]
ActionStatus = Literal["created", "scheduled", "in_progress", "completed"]
ABCValue = Literal["A", "B", "C"]
XYZValue = Literal["X", "Y", "Z"]

SOURCES: tuple[str, ...] = get_args(RecommendationSource)
SEVERITIES: tuple[str, ...] = get_args(Severity)
STATUSES: tuple[str, ...] = get_args(RecommendationStatus)
ACTION_STATUSES: tuple[str, ...] = get_args(ActionStatus)
ABC_VALUES: tuple[str, ...] = get_args(ABCValue)
XYZ_VALUES: tuple[str, ...] = get_args(XYZValue)

METRICS_FILE = "metrics.csv"
MEASURES_FILE = "measures.csv"
PRODUCTS_FILE = "products.csv"
RECOMMENDATIONS_FILE = "recommendations.csv"
RECOMMENDATION_MAPPINGS_FILE = "recommendations_mapping.csv"
SEGMENTATION_FILE = "segmentation.csv"

DATASET_FILES: tuple[str, ...] = (
    METRICS_FILE,
    MEASURES_FILE,
    PRODUCTS_FILE,
    RECOMMENDATIONS_FILE,
    RECOMMENDATION_MAPPINGS_FILE,
    SEGMENTATION_FILE,
)


def choose(value: str | None, allowed: tuple[str, ...], default: str | None) -> str | None:
    """Return value if it belongs to the enumeration, else the default."""
    if value and value in allowed:
        return value
    return default


@dataclass(frozen=True)
class MetricRecord:
    metric_id: str
    metric_name: str
    unit_value: float
    financial_value: float


@dataclass(frozen=True)
class MeasureRecord:
    measure_id: str
    measure_name: str
    product_id: str
    location_id: str
    weeks: tuple[float, ...]
    # Week columns the source row actually had; the rest of `weeks` is padding
    present_weeks: int = WEEKS_PER_MEASURE


@dataclass(frozen=True)
class ProductRecord:
    product_family: str
    product_id: str


@dataclass(frozen=True)
class RecommendationRecord:
    """
    A system recommendation or a user-created action.

    Records are immutable; user edits produce a new record via with_patch()
    and are persisted as partial overlays keyed by id.
    """

    id: str
    source: str = "recommendation"
    name: str = ""
    type: str = ""
    severity: str = "medium"
    status: str = "open"
    action_status: str | None = None
    start_date: str | None = None
    completion_date: str | None = None
    created_date: str | None = None

    def with_patch(self, patch: dict[str, Any]) -> "RecommendationRecord":
        known = {k: v for k, v in patch.items() if k in _RECOMMENDATION_FIELDS and k != "id"}
        return replace(self, **known)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecommendationRecord":
        return cls(
            id=str(data["id"]),
            source=choose(data.get("source"), SOURCES, "recommendation"),
            name=data.get("name") or "",
            type=data.get("type") or "",
            severity=choose(data.get("severity"), SEVERITIES, "medium"),
            status=choose(data.get("status"), STATUSES, "open"),
            action_status=choose(data.get("action_status"), ACTION_STATUSES, None),
            start_date=data.get("start_date") or None,
            completion_date=data.get("completion_date") or None,
            created_date=data.get("created_date") or None,
        )


_RECOMMENDATION_FIELDS = set(RecommendationRecord.__dataclass_fields__)


@dataclass(frozen=True)
class RecommendationMapping:
    recommendation_id: str
    display_name: str


@dataclass(frozen=True)
class SegmentationRecord:
    product_id: str
    abc_value: str
    xyz_value: str
    on_hand_unit: float
    on_hand_financial: float
    target_unit: float
    target_financial: float
    on_hand_days: float
    target_days: float

    @property
    def segment(self) -> str:
        return f"{self.abc_value}{self.xyz_value}"


@dataclass
class DatasetBundle:
    """The six datasets of one load cycle."""

    metrics: list[MetricRecord]
    measures: list[MeasureRecord]
    products: list[ProductRecord]
    recommendations: list[RecommendationRecord]
    recommendation_mappings: list[RecommendationMapping]
    segmentation: list[SegmentationRecord]

    @classmethod
    def empty(cls) -> "DatasetBundle":
        return cls([], [], [], [], [], [])
