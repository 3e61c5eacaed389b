#!/usr/bin/env python3
"""
Configuration for DigitalOcean Spaces (S3-compatible) uploads.

Settings come from the environment. A .env file in the working directory
is loaded first; variables already set in the environment take precedence.
"""

import logging
import os
from typing import List, Mapping, Optional

from dotenv import load_dotenv

from spaces_errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_REGION = 'nyc3'
DEFAULT_SOURCE_DIR = 'publish'

REQUIRED_VARIABLES = {
    'bucket': 'DO_SPACES_BUCKET',
    'access_key': 'DO_SPACES_ACCESS_KEY',
    'secret_key': 'DO_SPACES_SECRET_KEY',
}


def default_endpoint(region: str) -> str:
    """Get the Spaces endpoint URL for a region."""
    return f"https://{region}.digitaloceanspaces.com"


class SpacesSettings:
    """
    Connection settings for one deploy or migration run.

    Holds the upload target (bucket, region, endpoint), the credentials and
    the local source directory. Built once at start-up and not changed after.
    """

    def __init__(self,
                 bucket: Optional[str],
                 access_key: Optional[str],
                 secret_key: Optional[str],
                 region: str = DEFAULT_REGION,
                 endpoint_url: Optional[str] = None,
                 source_dir: str = DEFAULT_SOURCE_DIR,
                 verify_ssl: bool = True,
                 timeout: Optional[float] = None):
        """
        Initialize Spaces settings.

        Args:
            bucket: Bucket (Space) name
            access_key: Access key ID
            secret_key: Secret access key
            region: Region slug, also used in the signature scope
            endpoint_url: Endpoint URL (defaults to https://{region}.digitaloceanspaces.com)
            source_dir: Local directory to deploy
            verify_ssl: Whether to verify SSL certificates
            timeout: Per-request timeout in seconds, None waits indefinitely
        """
        self.bucket = bucket
        self.access_key = access_key
        self.secret_key = secret_key
        self.region = region or DEFAULT_REGION
        self.endpoint_url = (endpoint_url or default_endpoint(self.region)).rstrip('/')
        self.source_dir = source_dir or DEFAULT_SOURCE_DIR
        self.verify_ssl = verify_ssl
        self.timeout = timeout

    @property
    def site_url(self) -> str:
        """Public URL the deployed site is served from."""
        return f"https://{self.bucket}.{self.region}.digitaloceanspaces.com"

    def missing_fields(self) -> List[str]:
        """Get the environment variable names of required settings that are empty."""
        return [env_name for field, env_name in REQUIRED_VARIABLES.items()
                if not getattr(self, field)]

    def validate(self):
        """Raise ConfigurationError if bucket or credentials are missing."""
        missing = self.missing_fields()
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

    def __repr__(self):
        return (f"SpacesSettings(bucket={self.bucket!r}, region={self.region!r}, "
                f"endpoint_url={self.endpoint_url!r}, source_dir={self.source_dir!r})")


def _parse_timeout(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        timeout = float(value)
    except ValueError:
        raise ConfigurationError(f"SPACES_UPLOAD_TIMEOUT must be a number, got {value!r}")
    return timeout if timeout > 0 else None


def load_settings_from_environment(environ: Optional[Mapping[str, str]] = None,
                                   use_dotenv: bool = True) -> SpacesSettings:
    """
    Create SpacesSettings from environment variables.

    Environment variables:
        - DO_SPACES_BUCKET: Bucket name (required)
        - DO_SPACES_ACCESS_KEY: Access key (required)
        - DO_SPACES_SECRET_KEY: Secret key (required)
        - DO_SPACES_REGION: Region (optional, default: nyc3)
        - DO_SPACES_ENDPOINT: Endpoint URL (optional, derived from region)
        - SOURCE_DIR: Directory to deploy (optional, default: publish)
        - SPACES_SKIP_SSL_VERIFICATION: Skip SSL verification (optional, default: false)
        - SPACES_UPLOAD_TIMEOUT: Request timeout in seconds (optional, default: none)

    Required values are not checked here; call validate() on the result.
    """
    if environ is None:
        if use_dotenv:
            load_dotenv()
        environ = os.environ

    region = environ.get('DO_SPACES_REGION') or DEFAULT_REGION

    settings = SpacesSettings(
        bucket=environ.get('DO_SPACES_BUCKET'),
        access_key=environ.get('DO_SPACES_ACCESS_KEY'),
        secret_key=environ.get('DO_SPACES_SECRET_KEY'),
        region=region,
        endpoint_url=environ.get('DO_SPACES_ENDPOINT') or default_endpoint(region),
        source_dir=environ.get('SOURCE_DIR') or DEFAULT_SOURCE_DIR,
        verify_ssl=environ.get('SPACES_SKIP_SSL_VERIFICATION', 'false').lower() != 'true',
        timeout=_parse_timeout(environ.get('SPACES_UPLOAD_TIMEOUT')),
    )
    logger.debug(f"Loaded {settings!r}")
    return settings
