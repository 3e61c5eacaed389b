#!/usr/bin/env python3
"""
AWS Signature Version 4 for S3-compatible PUT requests.

Signs path-style object uploads with an unsigned payload so that files can
be pushed to DigitalOcean Spaces (or any S3-compatible API) with plain
requests, without an SDK.
"""

import hashlib
import hmac
from datetime import datetime, timezone
from typing import Dict, Optional

ALGORITHM = 'AWS4-HMAC-SHA256'
SERVICE = 's3'
UNSIGNED_PAYLOAD = 'UNSIGNED-PAYLOAD'


def format_amz_date(timestamp: Optional[datetime] = None) -> str:
    """
    Format a timestamp as YYYYMMDDTHHMMSSZ.

    Naive datetimes are taken to be UTC. Defaults to the current time.
    """
    if timestamp is None:
        timestamp = datetime.now(timezone.utc)
    elif timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    else:
        timestamp = timestamp.astimezone(timezone.utc)
    return timestamp.strftime('%Y%m%dT%H%M%SZ')


def _hmac_sha256(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode('utf-8'), hashlib.sha256).digest()


def derive_signing_key(secret_key: str, date: str, region: str) -> bytes:
    """Derive the SigV4 signing key for a date (YYYYMMDD) and region."""
    date_key = _hmac_sha256(('AWS4' + secret_key).encode('utf-8'), date)
    date_region_key = _hmac_sha256(date_key, region)
    date_region_service_key = _hmac_sha256(date_region_key, SERVICE)
    return _hmac_sha256(date_region_service_key, 'aws4_request')


def build_canonical_request(method: str, bucket: str, key: str,
                            headers: Dict[str, str]):
    """
    Build the canonical request for a path-style object request.

    Returns:
        Tuple of (canonical_request, signed_headers)
    """
    normalized = sorted((name.lower(), str(value)) for name, value in headers.items())

    canonical_headers = ''.join(f"{name}:{value}\n" for name, value in normalized)
    signed_headers = ';'.join(name for name, _ in normalized)

    canonical_request = '\n'.join([
        method,
        f"/{bucket}/{key}",
        '',
        canonical_headers,
        signed_headers,
        UNSIGNED_PAYLOAD,
    ])
    return canonical_request, signed_headers


def sign_request(method: str, bucket: str, key: str, headers: Dict[str, str],
                 secret_key: str, access_key: str, region: str,
                 timestamp: Optional[datetime] = None) -> Dict[str, str]:
    """
    Create the AWS Signature Version 4 for an S3 request.

    Every header passed in is signed, so it must contain every header that
    will actually be sent (Content-Length, Content-Type, x-amz-acl, ...).

    Args:
        method: HTTP method
        bucket: Bucket name
        key: Object key, forward-slash separated
        headers: Headers to sign
        secret_key: Secret access key
        access_key: Access key ID
        region: Region used in the credential scope
        timestamp: Signing time (defaults to now)

    Returns:
        Dictionary with authorization, amz_date, signature, signed_headers,
        canonical_request and string_to_sign
    """
    amz_date = format_amz_date(timestamp)
    date = amz_date[:8]

    canonical_request, signed_headers = build_canonical_request(method, bucket, key, headers)

    credential_scope = f"{date}/{region}/{SERVICE}/aws4_request"
    string_to_sign = '\n'.join([
        ALGORITHM,
        amz_date,
        credential_scope,
        hashlib.sha256(canonical_request.encode('utf-8')).hexdigest(),
    ])

    signing_key = derive_signing_key(secret_key, date, region)
    signature = hmac.new(signing_key, string_to_sign.encode('utf-8'), hashlib.sha256).hexdigest()

    authorization = (
        f"{ALGORITHM} Credential={access_key}/{credential_scope}, "
        f"SignedHeaders={signed_headers}, Signature={signature}"
    )

    return {
        'authorization': authorization,
        'amz_date': amz_date,
        'signature': signature,
        'signed_headers': signed_headers,
        'canonical_request': canonical_request,
        'string_to_sign': string_to_sign,
    }


def build_signed_headers(method: str, bucket: str, key: str, headers: Dict[str, str],
                         secret_key: str, access_key: str, region: str,
                         timestamp: Optional[datetime] = None) -> Dict[str, str]:
    """
    Sign a request and return the full set of headers to send with it.

    The returned mapping holds the original headers unchanged plus
    Authorization and x-amz-date.
    """
    signed = sign_request(method, bucket, key, headers, secret_key,
                          access_key, region, timestamp)

    request_headers = {
        'Authorization': signed['authorization'],
        'x-amz-date': signed['amz_date'],
    }
    request_headers.update(headers)
    return request_headers
