"""
S3 Object Store Client

Minimal List/Get/Put client for the dashboard's cloud data source. Requests
are signed with integrations.s3_signing (SigV4) and sent with httpx; no AWS
SDK is involved.

Addressing:
  - AWS (default): virtual-hosted  https://<bucket>.s3.<region>.amazonaws.com/<key>
  - S3-compatible store (s3_endpoint_host set): path-style
    <scheme>://<endpoint>/<bucket>/<key>
"""

from __future__ import annotations

import html
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

import httpx
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from core.config import Settings
from integrations.s3_signing import canonical_query_string, canonical_uri, sign_request

logger = structlog.get_logger()

CSV_CONTENT_TYPE = "text/csv"

_CONTENTS_RE = re.compile(r"<Contents(?:\s[^>]*)?>(.*?)</Contents\s*>", re.DOTALL)
_PREFIXES_RE = re.compile(r"<CommonPrefixes(?:\s[^>]*)?>(.*?)</CommonPrefixes\s*>", re.DOTALL)


def _element(block: str, tag: str) -> str | None:
    match = re.search(rf"<{tag}(?:\s[^>]*)?>(.*?)</{tag}\s*>", block, re.DOTALL)
    if match is None:
        return None
    return html.unescape(match.group(1).strip())


# ── Errors ────────────────────────────────────────────────────────────────


class S3Error(Exception):
    """Base class for object store failures."""


class S3CredentialsError(S3Error):
    """Raised when a remote call is attempted without credentials."""


class S3RequestError(S3Error):
    """Raised when the object store answers with a non-success status."""

    def __init__(self, status_code: int, reason: str, body: str, action: str = "request"):
        self.status_code = status_code
        self.reason = reason
        self.body = body
        super().__init__(f"S3 {action} failed: {status_code} {reason}\n{body}")


# ── Models ────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class S3Credentials:
    access_key_id: str
    secret_access_key: str

    @property
    def configured(self) -> bool:
        return bool(self.access_key_id and self.secret_access_key)


@dataclass(frozen=True)
class S3Object:
    key: str
    size: int


def parse_list_objects(xml_text: str) -> tuple[list[S3Object], str | None]:
    """
    Extract CSV objects from a ListObjectsV2 response body.

    Returns the objects in response order and the continuation token when
    the listing is truncated.
    """
    objects = []
    for block in _CONTENTS_RE.findall(xml_text):
        key = _element(block, "Key") or ""
        size_text = _element(block, "Size") or "0"
        try:
            size = int(size_text)
        except ValueError:
            size = 0
        if key and key.lower().endswith(".csv"):
            objects.append(S3Object(key=key, size=size))

    truncated = (_element(xml_text, "IsTruncated") or "").lower() == "true"
    token = _element(xml_text, "NextContinuationToken") if truncated else None
    return objects, token


def parse_common_prefixes(xml_text: str) -> list[str]:
    prefixes = []
    for block in _PREFIXES_RE.findall(xml_text):
        prefix = _element(block, "Prefix")
        if prefix:
            prefixes.append(prefix.rstrip("/"))
    return prefixes


# ── Client ────────────────────────────────────────────────────────────────


class S3Client:
    """Signed HTTP client for one AWS region (or S3-compatible endpoint)."""

    def __init__(
        self,
        credentials: S3Credentials,
        region: str = "us-east-1",
        endpoint_host: str = "",
        endpoint_scheme: str = "https",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.credentials = credentials
        self.region = region
        self.endpoint_host = endpoint_host
        self.endpoint_scheme = endpoint_scheme
        self.timeout = timeout
        self.transport = transport
        self.clock = clock
        self.logger = logger.bind(region=region, endpoint=endpoint_host or "aws")

    @classmethod
    def from_settings(cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> "S3Client":
        return cls(
            credentials=S3Credentials(settings.aws_access_key_id, settings.aws_secret_access_key),
            region=settings.aws_region,
            endpoint_host=settings.s3_endpoint_host,
            endpoint_scheme=settings.s3_endpoint_scheme,
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )

    def _host_and_uri(self, bucket: str, key: str = "") -> tuple[str, str, str]:
        if self.endpoint_host:
            path = f"{bucket}/{key.lstrip('/')}" if key else f"{bucket}/"
            return self.endpoint_host, canonical_uri(path), self.endpoint_scheme
        return f"{bucket}.s3.{self.region}.amazonaws.com", canonical_uri(key), "https"

    async def _request(
        self,
        method: str,
        bucket: str,
        key: str = "",
        params: dict[str, str] | None = None,
        content: bytes = b"",
        extra_headers: dict[str, str] | None = None,
        action: str = "request",
    ) -> httpx.Response:
        if not self.credentials.configured:
            raise S3CredentialsError("AWS credentials not configured")

        host, uri, scheme = self._host_and_uri(bucket, key)
        query = canonical_query_string(params)
        signed = sign_request(
            method=method,
            host=host,
            uri=uri,
            query=query,
            access_key_id=self.credentials.access_key_id,
            secret_access_key=self.credentials.secret_access_key,
            region=self.region,
            payload=content,
            now=self.clock() if self.clock else None,
        )
        headers = dict(signed.headers)
        if extra_headers:
            headers.update(extra_headers)

        url = f"{scheme}://{host}{uri}" + (f"?{query}" if query else "")
        response = await self._send(method, url, headers, content)
        if not response.is_success:
            self.logger.error("s3_request_failed", method=method, bucket=bucket, key=key, status=response.status_code)
            raise S3RequestError(response.status_code, response.reason_phrase, response.text, action=action)
        return response

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(min=1, max=10),
        reraise=True,
    )
    async def _send(self, method: str, url: str, headers: dict[str, str], content: bytes) -> httpx.Response:
        async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
            return await client.request(method, url, headers=headers, content=content or None)

    async def list_objects(self, bucket: str, prefix: str = "") -> list[S3Object]:
        """List every .csv object under a prefix, following continuation tokens."""
        objects: list[S3Object] = []
        token: str | None = None
        while True:
            params = {"list-type": "2"}
            if prefix:
                params["prefix"] = prefix
            if token:
                params["continuation-token"] = token
            response = await self._request("GET", bucket, params=params)
            page, token = parse_list_objects(response.text)
            objects.extend(page)
            if not token:
                break

        self.logger.info("s3_objects_listed", bucket=bucket, prefix=prefix, count=len(objects))
        return objects

    async def list_folders(self, bucket: str, prefix: str = "") -> list[str]:
        """List the top-level "folders" (common prefixes) below a prefix."""
        params = {"list-type": "2", "delimiter": "/"}
        if prefix:
            params["prefix"] = prefix
        response = await self._request("GET", bucket, params=params)
        return parse_common_prefixes(response.text)

    async def get_object(self, bucket: str, key: str) -> str:
        response = await self._request("GET", bucket, key)
        return response.text

    async def put_object(self, bucket: str, key: str, content: str | bytes) -> None:
        body = content.encode("utf-8") if isinstance(content, str) else bytes(content)
        await self._request(
            "PUT",
            bucket,
            key,
            content=body,
            extra_headers={"Content-Type": CSV_CONTENT_TYPE},
            action="upload",
        )
        self.logger.info("s3_object_uploaded", bucket=bucket, key=key, size=len(body))
