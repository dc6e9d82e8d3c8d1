"""
Proxy Router — pass-through to the external S3 proxy backend.

The client never raises, so upstream failures come back as envelopes with
success=False (or status "unhealthy") rather than HTTP errors.
"""

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from api.deps import get_backend_api_client
from integrations.backend_api import BackendApiClient, HealthResponse, S3Response, UploadResponse

router = APIRouter(prefix="/api/v1/proxy", tags=["proxy"])


@router.get("/health", response_model=HealthResponse)
async def proxy_health(client: BackendApiClient = Depends(get_backend_api_client)):
    return await client.health_check()


@router.get("/folders", response_model=S3Response)
async def proxy_folders(client: BackendApiClient = Depends(get_backend_api_client)):
    return await client.list_folders()


@router.get("/data/{folder:path}", response_model=S3Response)
async def proxy_folder_data(folder: str, client: BackendApiClient = Depends(get_backend_api_client)):
    """Every file of a bucket folder, read through the proxy."""
    return await client.load_folder_data(folder)


@router.post("/upload/{folder:path}", response_model=UploadResponse)
async def proxy_upload(
    folder: str,
    files: list[UploadFile] = File(...),
    client: BackendApiClient = Depends(get_backend_api_client),
):
    payload = []
    for upload in files:
        name = upload.filename or ""
        if not name.lower().endswith(".csv"):
            raise HTTPException(status_code=400, detail=f"Only CSV files can be uploaded: {name}")
        payload.append((name, await upload.read()))
    return await client.upload_files(folder, payload)
