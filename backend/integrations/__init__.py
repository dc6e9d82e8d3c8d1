"""
Integration clients package.

Remote data sources for the dashboard:
  - S3 object store  (signed List/Get/Put over HTTP, no SDK)
  - S3 proxy backend (JSON envelopes over HTTP)

Usage:
    from integrations import S3Client

    client = S3Client.from_settings(get_settings())
    objects = await client.list_objects("my-bucket", "dataset/input/")
"""

from integrations.backend_api import BackendApiClient, S3Response, UploadResponse
from integrations.s3_client import (
    S3Client,
    S3Credentials,
    S3CredentialsError,
    S3Error,
    S3Object,
    S3RequestError,
)

__all__ = [
    "BackendApiClient",
    "S3Response",
    "UploadResponse",
    "S3Client",
    "S3Credentials",
    "S3CredentialsError",
    "S3Error",
    "S3Object",
    "S3RequestError",
]
