"""
Data Source Router — cloud mode toggle and bucket folder browsing/upload.
"""

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel, Field

from api.deps import get_dashboard_store
from dashboard.datasets import browse_folder, missing_required_files, upload_dataset_folder
from dashboard.store import DashboardStore, DataLoadError
from integrations.s3_client import S3Client, S3Error

router = APIRouter(prefix="/api/v1/data-source", tags=["data-source"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class CloudModeRequest(BaseModel):
    folder: str = Field(..., max_length=1024)
    verify: bool = False


class DataSourceResponse(BaseModel):
    cloud_mode: bool
    folder_path: str
    info: dict[str, str]


class S3ObjectResponse(BaseModel):
    key: str
    size: int


class UploadResultResponse(BaseModel):
    name: str
    key: str
    size: int
    error: str | None = None


def _s3_client(store: DashboardStore) -> S3Client:
    if store.s3_client_factory is None:
        raise HTTPException(status_code=503, detail="Object store is not configured")
    return store.s3_client_factory()


def _state_response(store: DashboardStore) -> DataSourceResponse:
    selector = store.selector
    return DataSourceResponse(
        cloud_mode=selector.cloud_mode,
        folder_path=selector.folder_path,
        info=selector.data_source_info(),
    )


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/", response_model=DataSourceResponse)
async def get_data_source(store: DashboardStore = Depends(get_dashboard_store)):
    return _state_response(store)


@router.post("/cloud", response_model=DataSourceResponse)
async def enable_cloud_mode(
    payload: CloudModeRequest,
    store: DashboardStore = Depends(get_dashboard_store),
):
    """Read every dataset from a bucket folder and reload."""
    bucket = store.selector.settings.s3_bucket

    async def check_folder(folder: str) -> None:
        objects = await _s3_client(store).list_objects(bucket, f"{folder.strip('/')}/")
        missing = missing_required_files([obj.key for obj in objects])
        if missing:
            raise ValueError(f"Folder '{folder}' is missing: {', '.join(missing)}")

    try:
        await store.selector.enable_cloud_mode(payload.folder, check=check_folder if payload.verify else None)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (S3Error, DataLoadError) as e:
        raise HTTPException(status_code=502, detail=str(e))
    return _state_response(store)


@router.delete("/cloud", response_model=DataSourceResponse)
async def disable_cloud_mode(store: DashboardStore = Depends(get_dashboard_store)):
    """Go back to the local static files and reload."""
    try:
        await store.selector.disable_cloud_mode()
    except DataLoadError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return _state_response(store)


@router.get("/folders", response_model=list[str])
async def list_bucket_folders(store: DashboardStore = Depends(get_dashboard_store)):
    try:
        return await _s3_client(store).list_folders(store.selector.settings.s3_bucket)
    except S3Error as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.get("/browse", response_model=list[S3ObjectResponse])
async def browse_bucket_folder(
    folder: str = "",
    store: DashboardStore = Depends(get_dashboard_store),
):
    objects = await browse_folder(_s3_client(store), store.selector.settings.s3_bucket, folder)
    return [S3ObjectResponse(key=obj.key, size=obj.size) for obj in objects]


@router.post("/upload", response_model=list[UploadResultResponse])
async def upload_to_bucket(
    folder: str = "",
    files: list[UploadFile] = File(...),
    store: DashboardStore = Depends(get_dashboard_store),
):
    """Upload CSV files to <folder>/ in the configured bucket."""
    payload = []
    for upload in files:
        name = upload.filename or ""
        if not name.lower().endswith(".csv"):
            raise HTTPException(status_code=400, detail=f"Only CSV files can be uploaded: {name}")
        payload.append((name, await upload.read()))

    results = await upload_dataset_folder(
        _s3_client(store),
        store.selector.settings.s3_bucket,
        folder,
        payload,
    )
    return [UploadResultResponse(name=r.name, key=r.key, size=r.size, error=r.error) for r in results]
