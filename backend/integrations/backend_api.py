"""
S3 Proxy Backend Client

The dashboard can also browse and upload bucket folders through the
external FastAPI proxy service:

    GET  /api/s3/folders           -> {"success": bool, "folders": [...]}
    GET  /api/s3/data/{folder}     -> {"success": bool, "files": [{name, content}]}
    POST /api/s3/upload/{folder}   -> {"success": bool, "uploaded_files": [...]}
    GET  /health                   -> {"status": ..., "s3_connection": ...}

Every method returns an envelope and never raises; transport failures and
non-JSON answers become success=False with the error text.
"""

from __future__ import annotations

from urllib.parse import quote

import httpx
import structlog
from pydantic import BaseModel, Field
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from core.config import Settings

logger = structlog.get_logger()


# ─── Envelopes ──────────────────────────────────────────────────────────────


class S3File(BaseModel):
    name: str
    content: str


class S3Response(BaseModel):
    success: bool
    files: list[S3File] | None = None
    folders: list[str] | None = None
    error: str | None = None


class UploadedFile(BaseModel):
    name: str
    size: int = 0
    key: str = ""


class UploadResponse(BaseModel):
    success: bool
    uploaded_files: list[UploadedFile] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    error: str | None = None


class HealthResponse(BaseModel):
    status: str
    s3_connection: str = "unknown"


# ─── Client ─────────────────────────────────────────────────────────────────


class BackendApiClient:
    """Client for the S3 proxy backend."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> "BackendApiClient":
        return cls(settings.api_base_url, timeout=settings.http_timeout_seconds, transport=transport)

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(min=1, max=10),
        reraise=True,
    )
    async def _call(self, method: str, path: str, **kwargs) -> dict:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            transport=self.transport,
            timeout=self.timeout,
        ) as client:
            response = await client.request(method, path, **kwargs)
            return response.json()

    async def list_folders(self) -> S3Response:
        try:
            payload = await self._call("GET", "/api/s3/folders")
            return S3Response.model_validate(payload)
        except (ValueError, httpx.HTTPError) as e:
            logger.error("backend_list_folders_failed", error=str(e))
            return S3Response(success=False, error=str(e) or "Failed to list folders", folders=[])

    async def load_folder_data(self, folder_path: str) -> S3Response:
        path = f"/api/s3/data/{quote(folder_path, safe='')}"
        try:
            payload = await self._call("GET", path)
            return S3Response.model_validate(payload)
        except (ValueError, httpx.HTTPError) as e:
            logger.error("backend_load_folder_failed", folder=folder_path, error=str(e))
            return S3Response(success=False, error=str(e) or "Failed to load data from S3", files=[])

    async def upload_files(self, folder_path: str, files: list[tuple[str, bytes]]) -> UploadResponse:
        """Upload (filename, content) pairs as multipart field "files"."""
        path = f"/api/s3/upload/{quote(folder_path, safe='')}"
        multipart = [("files", (name, content, "text/csv")) for name, content in files]
        try:
            payload = await self._call("POST", path, files=multipart)
            return UploadResponse.model_validate(payload)
        except (ValueError, httpx.HTTPError) as e:
            logger.error("backend_upload_failed", folder=folder_path, error=str(e))
            return UploadResponse(success=False, error=str(e) or "Failed to upload files")

    async def health_check(self) -> HealthResponse:
        try:
            payload = await self._call("GET", "/health")
            return HealthResponse.model_validate(payload)
        except (ValueError, httpx.HTTPError) as e:
            logger.error("backend_health_check_failed", error=str(e))
            return HealthResponse(status="unhealthy", s3_connection="failed")
