"""
Recommendations Router — accept/reject recommendations and manage actions.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel, Field

from api.deps import get_dashboard_store
from dashboard import recommendations as ops
from dashboard.store import DashboardStore
from ingest.records import RecommendationRecord

router = APIRouter(prefix="/api/v1/recommendations", tags=["recommendations"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class RecommendationResponse(BaseModel):
    id: str
    source: str
    name: str
    display_name: str | None = None
    type: str
    severity: str
    status: str
    action_status: str | None = None
    start_date: str | None = None
    completion_date: str | None = None
    created_date: str | None = None


class ActionStatusUpdate(BaseModel):
    status: str
    action_status: str | None = None
    start_date: str | None = None
    completion_date: str | None = None


class ActionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    type: str = Field(..., min_length=1, max_length=100)
    severity: str = "medium"


def _response(store: DashboardStore, rec: RecommendationRecord) -> RecommendationResponse:
    return RecommendationResponse(**rec.to_dict(), display_name=store.display_names().get(rec.id))


def _get_or_404(store: DashboardStore, recommendation_id: str) -> RecommendationRecord:
    rec = store.get_recommendation(recommendation_id)
    if rec is None:
        raise HTTPException(status_code=404, detail="Recommendation not found")
    return rec


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/", response_model=list[RecommendationResponse])
async def list_recommendations(
    status: str | None = None,
    source: str | None = None,
    store: DashboardStore = Depends(get_dashboard_store),
):
    """List recommendations and actions with optional status/source filters."""
    records = store.data.recommendations
    if status:
        records = [r for r in records if r.status == status]
    if source:
        records = [r for r in records if r.source == source]
    return [_response(store, r) for r in records]


@router.get("/export")
async def export_recommendations(store: DashboardStore = Depends(get_dashboard_store)):
    """Current recommendations, user edits included, as a CSV download."""
    return Response(
        content=ops.recommendations_to_csv(store.data.recommendations),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="recommendations.csv"'},
    )


@router.post("/{recommendation_id}/accept", response_model=RecommendationResponse)
async def accept_recommendation(
    recommendation_id: str,
    store: DashboardStore = Depends(get_dashboard_store),
):
    rec = _get_or_404(store, recommendation_id)
    return _response(store, store.update_recommendation(ops.accept(rec)))


@router.post("/{recommendation_id}/reject", response_model=RecommendationResponse)
async def reject_recommendation(
    recommendation_id: str,
    store: DashboardStore = Depends(get_dashboard_store),
):
    rec = _get_or_404(store, recommendation_id)
    return _response(store, store.update_recommendation(ops.reject(rec)))


@router.patch("/{recommendation_id}/status", response_model=RecommendationResponse)
async def update_status(
    recommendation_id: str,
    update: ActionStatusUpdate,
    store: DashboardStore = Depends(get_dashboard_store),
):
    rec = _get_or_404(store, recommendation_id)
    try:
        updated = ops.update_action_status(
            rec,
            update.status,
            update.action_status,
            update.start_date,
            update.completion_date,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _response(store, store.update_recommendation(updated))


@router.post("/actions", response_model=RecommendationResponse, status_code=201)
async def create_action(
    action: ActionCreate,
    store: DashboardStore = Depends(get_dashboard_store),
):
    """Create a user action; it is persisted like any other recommendation edit."""
    try:
        rec = ops.create_action(action.name, action.type, action.severity)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _response(store, store.update_recommendation(rec))
