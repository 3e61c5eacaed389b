#!/usr/bin/env python3
"""
Single-object uploads to DigitalOcean Spaces.

Uses requests with a hand-signed Authorization header (see spaces_signer)
instead of boto3, so the exact headers that go on the wire are the ones
that were signed.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

import requests

from content_types import get_content_type
from spaces_config import SpacesSettings
from spaces_errors import UploadError
from spaces_signer import build_signed_headers

logger = logging.getLogger(__name__)

PUBLIC_READ_ACL = 'public-read'


class SpacesUploader:
    """
    Uploads files to a Spaces bucket, one PUT per object.
    """

    def __init__(self, settings: SpacesSettings, session: Optional[requests.Session] = None):
        """
        Initialize uploader.

        Args:
            settings: Target bucket, endpoint and credentials
            session: requests session to reuse (a new one is created if omitted)
        """
        self.settings = settings
        self.session = session or requests.Session()

        if not settings.verify_ssl:
            logger.warning("SSL verification disabled for Spaces uploads")
            self.session.verify = False
            # Suppress SSL warnings
            import urllib3
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    def object_url(self, key: str) -> str:
        """Get the path-style URL of an object."""
        return f"{self.settings.endpoint_url}/{self.settings.bucket}/{key}"

    def build_headers(self, key: str, body: bytes, content_type: str,
                      timestamp: Optional[datetime] = None) -> Dict[str, str]:
        """
        Build the signed header set for uploading body to key.

        Content-Type, x-amz-acl and Content-Length are all signed.
        """
        headers = {
            'Content-Type': content_type,
            'x-amz-acl': PUBLIC_READ_ACL,
            'Content-Length': str(len(body)),
        }
        return build_signed_headers(
            'PUT',
            self.settings.bucket,
            key,
            headers,
            secret_key=self.settings.secret_key,
            access_key=self.settings.access_key,
            region=self.settings.region,
            timestamp=timestamp,
        )

    def put_object(self, key: str, body: bytes, content_type: str) -> Dict[str, Any]:
        """
        PUT raw bytes to key.

        Raises:
            UploadError: on a non-2xx response or a network failure
        """
        headers = self.build_headers(key, body, content_type)

        try:
            response = self.session.put(
                self.object_url(key),
                data=body,
                headers=headers,
                timeout=self.settings.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise UploadError(key, f"Upload failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise UploadError(
                key,
                f"Upload failed: {response.status_code} - {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        logger.debug(f"Uploaded {key} ({len(body)} bytes, {content_type})")
        return {
            'key': key,
            'success': True,
            'error': None,
            'status_code': response.status_code,
        }

    def upload_file(self, entry: Dict[str, Any]) -> Dict[str, Any]:
        """
        Upload one file from the site export.

        The whole file is read into memory. Re-uploading an existing key
        overwrites it.

        Args:
            entry: {'path': Path, 'key': str} as produced by site_files.list_site_files

        Returns:
            Upload result dictionary

        Raises:
            UploadError: if the file can't be read or the PUT fails
        """
        key = entry['key']

        try:
            with open(entry['path'], 'rb') as f:
                body = f.read()
        except OSError as e:
            raise UploadError(key, f"Could not read {entry['path']}: {e}") from e

        return self.put_object(key, body, get_content_type(entry['path']))
