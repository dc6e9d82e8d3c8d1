"""
Dataset loaders.

Each loader is a function of (DataSourceConfig) -> records. The config says
whether the CSV comes from the local static directory or from a folder in
the configured S3 bucket; loaders never read ambient state themselves.

Loaders never raise. A missing file, a failed S3 call or a broken row is
logged and the loader returns an empty list for that dataset.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

import structlog

from ingest.csv_parser import parse_csv, parse_number
from ingest.records import (
    ABC_VALUES,
    ACTION_STATUSES,
    MEASURES_FILE,
    METRICS_FILE,
    PRODUCTS_FILE,
    RECOMMENDATION_MAPPINGS_FILE,
    RECOMMENDATIONS_FILE,
    SEGMENTATION_FILE,
    SEVERITIES,
    SOURCES,
    STATUSES,
    WEEKS_PER_MEASURE,
    XYZ_VALUES,
    DatasetBundle,
    MeasureRecord,
    MetricRecord,
    ProductRecord,
    RecommendationMapping,
    RecommendationRecord,
    SegmentationRecord,
    choose,
)
from integrations.s3_client import S3Client

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class DataSourceConfig:
    """Where a load cycle reads its CSV files from."""

    cloud_mode: bool = False
    folder_path: str = ""
    local_data_dir: str = "local_data"
    bucket: str = ""

    @property
    def is_remote(self) -> bool:
        # Cloud mode without a folder falls back to local files
        return self.cloud_mode and bool(self.folder_path.strip())

    def object_key(self, filename: str) -> str:
        folder = self.folder_path.strip().strip("/")
        return f"{folder}/{filename}" if folder else filename


async def fetch_dataset_text(
    filename: str,
    config: DataSourceConfig,
    s3_client: S3Client | None = None,
) -> str:
    """Return the raw CSV text for one dataset from the configured source."""
    if config.is_remote:
        if s3_client is None:
            raise RuntimeError(f"Cloud mode is enabled but no S3 client was provided for {filename}")
        key = config.object_key(filename)
        logger.info("dataset_fetch_s3", filename=filename, bucket=config.bucket, key=key)
        return await s3_client.get_object(config.bucket, key)

    path = Path(config.local_data_dir) / filename
    logger.info("dataset_fetch_local", filename=filename, path=str(path))
    return await asyncio.to_thread(path.read_text, encoding="utf-8")


async def _load_dataset(
    filename: str,
    config: DataSourceConfig,
    s3_client: S3Client | None,
    map_row: Callable[[list[str]], T],
) -> list[T]:
    try:
        text = await fetch_dataset_text(filename, config, s3_client)
        rows = parse_csv(text)
        records = [map_row(row) for row in rows[1:] if any(row)]
    except Exception as e:
        logger.error("dataset_load_failed", filename=filename, error=str(e))
        return []

    logger.info("dataset_loaded", filename=filename, rows=len(records), remote=config.is_remote)
    return records


def _field(row: list[str], index: int) -> str:
    return row[index] if index < len(row) else ""


# ── Row mappers ───────────────────────────────────────────────────────────


def metric_from_row(row: list[str]) -> MetricRecord:
    return MetricRecord(
        metric_id=_field(row, 0),
        metric_name=_field(row, 1),
        unit_value=parse_number(_field(row, 2)),
        financial_value=parse_number(_field(row, 3)),
    )


def measure_from_row(row: list[str]) -> MeasureRecord:
    weeks = [parse_number(value) for value in row[4 : 4 + WEEKS_PER_MEASURE]]
    present_weeks = len(weeks)
    weeks.extend([0.0] * (WEEKS_PER_MEASURE - present_weeks))
    return MeasureRecord(
        measure_id=_field(row, 0),
        measure_name=_field(row, 1),
        product_id=_field(row, 2),
        location_id=_field(row, 3),
        weeks=tuple(weeks),
        present_weeks=present_weeks,
    )


def product_from_row(row: list[str]) -> ProductRecord:
    return ProductRecord(product_family=_field(row, 0), product_id=_field(row, 1))


def recommendation_from_row(row: list[str]) -> RecommendationRecord:
    return RecommendationRecord(
        id=_field(row, 0),
        source=choose(_field(row, 1), SOURCES, "recommendation"),
        name=_field(row, 2),
        type=_field(row, 3),
        severity=choose(_field(row, 4), SEVERITIES, "medium"),
        status=choose(_field(row, 5), STATUSES, "open"),
        action_status=choose(_field(row, 6), ACTION_STATUSES, None),
        start_date=_field(row, 7) or None,
        completion_date=_field(row, 8) or None,
        created_date=_field(row, 9) or None,
    )


def recommendation_mapping_from_row(row: list[str]) -> RecommendationMapping:
    return RecommendationMapping(recommendation_id=_field(row, 0), display_name=_field(row, 1))


def segmentation_from_row(row: list[str]) -> SegmentationRecord:
    return SegmentationRecord(
        product_id=_field(row, 0),
        abc_value=choose(_field(row, 1), ABC_VALUES, "A"),
        xyz_value=choose(_field(row, 2), XYZ_VALUES, "X"),
        on_hand_unit=parse_number(_field(row, 3)),
        on_hand_financial=parse_number(_field(row, 4)),
        target_unit=parse_number(_field(row, 5)),
        target_financial=parse_number(_field(row, 6)),
        on_hand_days=parse_number(_field(row, 7)),
        target_days=parse_number(_field(row, 8)),
    )


# ── Loaders ───────────────────────────────────────────────────────────────


async def load_metrics(config: DataSourceConfig, s3_client: S3Client | None = None) -> list[MetricRecord]:
    return await _load_dataset(METRICS_FILE, config, s3_client, metric_from_row)


async def load_measures(config: DataSourceConfig, s3_client: S3Client | None = None) -> list[MeasureRecord]:
    return await _load_dataset(MEASURES_FILE, config, s3_client, measure_from_row)


async def load_products(config: DataSourceConfig, s3_client: S3Client | None = None) -> list[ProductRecord]:
    return await _load_dataset(PRODUCTS_FILE, config, s3_client, product_from_row)


async def load_recommendations(
    config: DataSourceConfig, s3_client: S3Client | None = None
) -> list[RecommendationRecord]:
    return await _load_dataset(RECOMMENDATIONS_FILE, config, s3_client, recommendation_from_row)


async def load_recommendation_mappings(
    config: DataSourceConfig, s3_client: S3Client | None = None
) -> list[RecommendationMapping]:
    return await _load_dataset(RECOMMENDATION_MAPPINGS_FILE, config, s3_client, recommendation_mapping_from_row)


async def load_segmentation(
    config: DataSourceConfig, s3_client: S3Client | None = None
) -> list[SegmentationRecord]:
    return await _load_dataset(SEGMENTATION_FILE, config, s3_client, segmentation_from_row)


async def load_all(config: DataSourceConfig, s3_client: S3Client | None = None) -> DatasetBundle:
    """Run the six loaders concurrently and wait for all of them."""
    metrics, measures, products, recommendations, mappings, segmentation = await asyncio.gather(
        load_metrics(config, s3_client),
        load_measures(config, s3_client),
        load_products(config, s3_client),
        load_recommendations(config, s3_client),
        load_recommendation_mappings(config, s3_client),
        load_segmentation(config, s3_client),
    )
    return DatasetBundle(
        metrics=metrics,
        measures=measures,
        products=products,
        recommendations=recommendations,
        recommendation_mappings=mappings,
        segmentation=segmentation,
    )
