"""
Dashboard Router — snapshot, reload, and the aggregated chart/matrix views.
"""

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel

from api.deps import get_dashboard_store, get_state_store
from dashboard.currency import Currency, get_currency, set_currency
from dashboard.datasets import SAMPLE_DATASET_NAME, build_sample_dataset_zip
from dashboard.state import ClientStateStore
from dashboard.store import DashboardStore, DataLoadError
from ingest.aggregation import ALL_LOCATIONS, ALL_PRODUCTS

router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class ReloadResponse(BaseModel):
    generation: int
    last_updated: datetime | None
    data_source: dict[str, str] | None
    counts: dict[str, int]


class CurrencyPayload(BaseModel):
    currency: Currency


def _reload_response(store: DashboardStore) -> ReloadResponse:
    data = store.data
    return ReloadResponse(
        generation=store.snapshot.generation,
        last_updated=store.snapshot.last_updated,
        data_source=store.snapshot.data_source,
        counts={
            "metrics": len(data.metrics),
            "measures": len(data.measures),
            "products": len(data.products),
            "recommendations": len(data.recommendations),
            "recommendation_mappings": len(data.recommendation_mappings),
            "segmentation": len(data.segmentation),
        },
    )


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/data")
async def get_data(store: DashboardStore = Depends(get_dashboard_store)):
    """Full current snapshot, as the dashboard context exposes it."""
    data = store.data
    return {
        "metrics": data.metrics,
        "measures": data.measures,
        "products": data.products,
        "recommendations": data.recommendations,
        "recommendation_mappings": data.recommendation_mappings,
        "segmentation": data.segmentation,
        "loading": store.loading,
        "error": store.error,
        "last_updated": store.snapshot.last_updated,
        "data_source": store.snapshot.data_source,
    }


@router.post("/reload", response_model=ReloadResponse)
async def reload_data(store: DashboardStore = Depends(get_dashboard_store)):
    """Run a full load cycle from the current data source."""
    try:
        await store.reload()
    except DataLoadError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return _reload_response(store)


@router.get("/filters")
async def get_filters(store: DashboardStore = Depends(get_dashboard_store)):
    return store.filters()


@router.get("/measures")
async def get_measures(
    family: str = Query(ALL_PRODUCTS),
    location: str = Query(ALL_LOCATIONS),
    store: DashboardStore = Depends(get_dashboard_store),
):
    """Weekly series per measure for a product family and location."""
    return store.measure_series(family, location)


@router.get("/segmentation")
async def get_segmentation(
    family: str = Query(ALL_PRODUCTS),
    store: DashboardStore = Depends(get_dashboard_store),
):
    """ABC/XYZ matrix: always the 9 buckets AX..CZ."""
    return store.segmentation_matrix(family)


@router.get("/metrics")
async def get_metrics(
    unit: Literal["units", "financial"] = "units",
    store: DashboardStore = Depends(get_dashboard_store),
    state: ClientStateStore = Depends(get_state_store),
):
    return store.metric_cards(unit, get_currency(state))


@router.get("/currency", response_model=CurrencyPayload)
async def get_currency_preference(state: ClientStateStore = Depends(get_state_store)):
    return CurrencyPayload(currency=get_currency(state))


@router.put("/currency", response_model=CurrencyPayload)
async def update_currency_preference(
    payload: CurrencyPayload,
    state: ClientStateStore = Depends(get_state_store),
):
    set_currency(state, payload.currency)
    return payload


@router.get("/sample-dataset")
async def download_sample_dataset(store: DashboardStore = Depends(get_dashboard_store)):
    """Zip of the six local CSV files."""
    content = build_sample_dataset_zip(store.selector.settings.local_data_dir)
    return Response(
        content=content,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{SAMPLE_DATASET_NAME}"'},
    )
