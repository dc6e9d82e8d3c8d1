"""
AWS Signature Version 4 request signing for S3.

The dashboard talks to S3 with plain HTTP calls instead of a vendor SDK,
so every request is signed here. Only the headers S3 needs for
List/Get/Put are signed: host, x-amz-content-sha256 and x-amz-date.

Steps (see the AWS SigV4 reference):
  1. Timestamp in compact ISO form (YYYYMMDDTHHMMSSZ) + 8-digit date stamp
  2. Canonical request
  3. SHA-256 of the canonical request
  4. String to sign: algorithm, timestamp, credential scope, request hash
  5. Signing key: HMAC chain over date, region, service, "aws4_request"
  6. Signature: hex HMAC of the string to sign
"""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass, field
from datetime import datetime, timezone
from urllib.parse import quote

ALGORITHM = "AWS4-HMAC-SHA256"
SIGNED_HEADERS = "host;x-amz-content-sha256;x-amz-date"
TERMINATOR = "aws4_request"
EMPTY_PAYLOAD_HASH = hashlib.sha256(b"").hexdigest()


@dataclass
class SignedRequest:
    """Signature material and the headers to send with the request."""

    amz_date: str
    payload_hash: str
    canonical_request: str
    string_to_sign: str
    signature: str
    headers: dict[str, str] = field(default_factory=dict)


def sha256_hex(payload: bytes | str) -> str:
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    return hashlib.sha256(payload).hexdigest()


def hmac_sha256(key: bytes, message: str) -> bytes:
    return hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()


def amz_timestamp(now: datetime | None = None) -> tuple[str, str]:
    """Return (amz_date, date_stamp) for the given instant, in UTC."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    amz_date = now.strftime("%Y%m%dT%H%M%SZ")
    return amz_date, amz_date[:8]


def uri_encode(value: str, encode_slash: bool = True) -> str:
    """Percent-encode everything outside the RFC 3986 unreserved set."""
    return quote(value, safe="" if encode_slash else "/")


def canonical_uri(key: str = "") -> str:
    """Canonical path for an object key (S3 does not double-encode)."""
    return "/" + uri_encode(key.lstrip("/"), encode_slash=False)


def canonical_query_string(params: dict[str, str] | None) -> str:
    if not params:
        return ""
    encoded = sorted((uri_encode(k), uri_encode(str(v))) for k, v in params.items())
    return "&".join(f"{k}={v}" for k, v in encoded)


def credential_scope(date_stamp: str, region: str, service: str = "s3") -> str:
    return f"{date_stamp}/{region}/{service}/{TERMINATOR}"


def build_canonical_request(
    method: str,
    uri: str,
    query: str,
    host: str,
    amz_date: str,
    payload_hash: str,
) -> str:
    canonical_headers = f"host:{host}\nx-amz-content-sha256:{payload_hash}\nx-amz-date:{amz_date}\n"
    return "\n".join([method.upper(), uri, query, canonical_headers, SIGNED_HEADERS, payload_hash])


def build_string_to_sign(amz_date: str, scope: str, canonical_request: str) -> str:
    return "\n".join([ALGORITHM, amz_date, scope, sha256_hex(canonical_request)])


def derive_signing_key(secret_key: str, date_stamp: str, region: str, service: str) -> bytes:
    k_date = hmac_sha256(f"AWS4{secret_key}".encode("utf-8"), date_stamp)
    k_region = hmac_sha256(k_date, region)
    k_service = hmac_sha256(k_region, service)
    return hmac_sha256(k_service, TERMINATOR)


def sign_request(
    *,
    method: str,
    host: str,
    uri: str,
    query: str,
    access_key_id: str,
    secret_access_key: str,
    region: str,
    service: str = "s3",
    payload: bytes | str = b"",
    now: datetime | None = None,
) -> SignedRequest:
    """Sign one request and return the headers it must carry."""
    amz_date, date_stamp = amz_timestamp(now)
    payload_hash = sha256_hex(payload)
    scope = credential_scope(date_stamp, region, service)

    canonical_request = build_canonical_request(method, uri, query, host, amz_date, payload_hash)
    string_to_sign = build_string_to_sign(amz_date, scope, canonical_request)
    signing_key = derive_signing_key(secret_access_key, date_stamp, region, service)
    signature = hmac.new(signing_key, string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()

    authorization = (
        f"{ALGORITHM} Credential={access_key_id}/{scope}, "
        f"SignedHeaders={SIGNED_HEADERS}, Signature={signature}"
    )
    return SignedRequest(
        amz_date=amz_date,
        payload_hash=payload_hash,
        canonical_request=canonical_request,
        string_to_sign=string_to_sign,
        signature=signature,
        headers={
            "Host": host,
            "x-amz-date": amz_date,
            "x-amz-content-sha256": payload_hash,
            "Authorization": authorization,
        },
    )
