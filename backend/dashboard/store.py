"""
Dashboard Store — the in-memory snapshot behind every dashboard view.

A load cycle (startup, data source toggle, explicit reload) reads all six
datasets from the current source and replaces the previous snapshot
wholesale. Reloads may overlap; each one takes a generation number and
only the newest generation is allowed to publish its snapshot.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import structlog

from dashboard.currency import Currency, format_metric_value
from dashboard.data_source import DataSourceSelector
from dashboard.recommendations import RecommendationOverlayStore, merge_recommendations
from ingest.aggregation import (
    aggregate_measures,
    aggregate_segmentation,
    get_locations,
    get_product_families,
)
from ingest.loaders import DataSourceConfig, load_all
from ingest.records import DatasetBundle, RecommendationRecord
from integrations.s3_client import S3Client

logger = structlog.get_logger()

S3ClientFactory = Callable[[], S3Client]


class DataLoadError(Exception):
    """A full load cycle failed."""


@dataclass
class DashboardSnapshot:
    bundle: DatasetBundle = field(default_factory=DatasetBundle.empty)
    generation: int = 0
    last_updated: datetime | None = None
    data_source: dict[str, str] | None = None


class DashboardStore:
    def __init__(
        self,
        selector: DataSourceSelector,
        overlays: RecommendationOverlayStore,
        s3_client_factory: S3ClientFactory | None = None,
    ):
        self.selector = selector
        self.overlays = overlays
        self.s3_client_factory = s3_client_factory
        self.snapshot = DashboardSnapshot()
        self.loading = False
        self.error: str | None = None
        self._generation = 0

    @property
    def data(self) -> DatasetBundle:
        return self.snapshot.bundle

    def _s3_client(self, config: DataSourceConfig) -> S3Client | None:
        if not config.is_remote or self.s3_client_factory is None:
            return None
        return self.s3_client_factory()

    async def reload(self) -> DashboardSnapshot:
        """
        Run one load cycle and publish it unless a newer reload started meanwhile.

        Returns the snapshot that is current when this cycle finishes.
        """
        self._generation += 1
        generation = self._generation
        config = self.selector.current_config()
        self.loading = True
        self.error = None
        log = logger.bind(generation=generation, remote=config.is_remote)

        try:
            bundle = await load_all(config, self._s3_client(config))
            bundle.recommendations = merge_recommendations(bundle.recommendations, self.overlays.get_updates())
        except Exception as e:
            if generation == self._generation:
                self.error = str(e) or "Failed to load data"
                self.loading = False
            log.error("dashboard_reload_failed", error=str(e))
            raise DataLoadError(f"Error loading data: {self.error or e}") from e

        if generation != self._generation:
            log.info("dashboard_reload_superseded", latest=self._generation)
            return self.snapshot

        self.snapshot = DashboardSnapshot(
            bundle=bundle,
            generation=generation,
            last_updated=datetime.now(timezone.utc),
            data_source=self.selector.data_source_info(config),
        )
        self.loading = False
        log.info(
            "dashboard_reloaded",
            metrics=len(bundle.metrics),
            measures=len(bundle.measures),
            products=len(bundle.products),
            recommendations=len(bundle.recommendations),
            segmentation=len(bundle.segmentation),
        )
        return self.snapshot

    # ── Recommendations ──────────────────────────────────────────────────

    def get_recommendation(self, recommendation_id: str) -> RecommendationRecord | None:
        for rec in self.data.recommendations:
            if rec.id == recommendation_id:
                return rec
        return None

    def update_recommendation(self, recommendation: RecommendationRecord) -> RecommendationRecord:
        """
        Replace a record in the snapshot and persist the edit as an overlay.

        Only fields that differ from the current record are stored; a record
        not in the snapshot (a new user action) is stored in full.
        """
        current = self.get_recommendation(recommendation.id)
        new_fields = recommendation.to_dict()
        new_fields.pop("id")
        if current is None:
            patch = new_fields
            self.data.recommendations = [*self.data.recommendations, recommendation]
        else:
            old_fields = current.to_dict()
            patch = {k: v for k, v in new_fields.items() if old_fields.get(k) != v}
            self.data.recommendations = [
                recommendation if rec.id == recommendation.id else rec for rec in self.data.recommendations
            ]

        if patch:
            self.overlays.save_update(recommendation.id, patch)
        return recommendation

    # ── Views ────────────────────────────────────────────────────────────

    def filters(self) -> dict[str, list[str]]:
        return {
            "product_families": get_product_families(self.data.products),
            "locations": get_locations(self.data.measures),
        }

    def measure_series(self, product_family: str, location: str) -> dict[str, list[float]]:
        return aggregate_measures(self.data.measures, self.data.products, product_family, location)

    def segmentation_matrix(self, product_family: str) -> dict[str, dict[str, float]]:
        buckets = aggregate_segmentation(self.data.segmentation, self.data.products, product_family)
        return {key: bucket.to_dict() for key, bucket in buckets.items()}

    def metric_cards(self, unit: str = "units", currency: Currency = Currency.USD) -> list[dict[str, Any]]:
        cards = []
        for metric in self.data.metrics:
            value = metric.financial_value if unit == "financial" else metric.unit_value
            cards.append(
                {
                    "id": metric.metric_id,
                    "title": metric.metric_name,
                    "value": value,
                    "display_value": format_metric_value(metric.metric_id, value, unit, currency),
                }
            )
        return cards

    def display_names(self) -> dict[str, str]:
        return {m.recommendation_id: m.display_name for m in self.data.recommendation_mappings}
