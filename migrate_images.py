#!/usr/bin/env python3
"""
Image Migration: legacy S3 bucket to DigitalOcean Spaces

Scans the codebase for image URLs that point at the old S3 bucket, downloads
each image and re-uploads it to Spaces under the same key. Uses boto3 for the
upload rather than the hand-rolled signer used by deploy_static.

Items are processed one at a time; a failed image is logged and skipped.
"""

import argparse
import logging
import os
import re
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import boto3
import requests
import yaml
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from content_types import get_content_type
from spaces_config import SpacesSettings, load_settings_from_environment
from spaces_errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_OLD_PREFIXES = [
    'https://paathena-public-prod.s3-ap-southeast-1.amazonaws.com',
    'https://paathena-public-prod.s3.ap-southeast-1.amazonaws.com',
]
DEFAULT_FILE_EXTENSIONS = ['.js', '.jsx', '.ts', '.tsx', '.html', '.css', '.json']
DEFAULT_IMAGE_EXTENSIONS = ['png', 'jpg', 'jpeg', 'gif', 'svg', 'webp']
DEFAULT_IGNORE = ['node_modules']


def _as_string_list(name: str, value) -> List[str]:
    """Accept a single string or a list of strings for a config value."""
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return list(value)
    raise ConfigurationError(f"{name} must be a string or a list of strings, got {value!r}")


def load_migration_config(config_path: Optional[str] = None,
                          environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    Load migration settings.

    Defaults are overridden by MIGRATE_OLD_PREFIXES (comma-separated), which
    is in turn overridden by a YAML config file when one is given.

    Raises:
        ConfigurationError: if the config file can't be read or parsed
    """
    if environ is None:
        environ = os.environ

    config = {
        'old_prefixes': list(DEFAULT_OLD_PREFIXES),
        'file_extensions': list(DEFAULT_FILE_EXTENSIONS),
        'image_extensions': list(DEFAULT_IMAGE_EXTENSIONS),
        'ignore': list(DEFAULT_IGNORE),
    }

    env_prefixes = environ.get('MIGRATE_OLD_PREFIXES')
    if env_prefixes:
        config['old_prefixes'] = [p.strip() for p in env_prefixes.split(',') if p.strip()]

    if config_path:
        try:
            with open(config_path, 'r') as f:
                file_config = yaml.safe_load(f) or {}
        except (yaml.YAMLError, IOError) as e:
            raise ConfigurationError(f"Could not load config file {config_path}: {e}")

        if not isinstance(file_config, dict):
            raise ConfigurationError(f"Config file {config_path} must contain a mapping")

        for name in config:
            if file_config.get(name):
                config[name] = _as_string_list(name, file_config[name])

    config['old_prefixes'] = [p.rstrip('/') for p in config['old_prefixes']]
    if not config['old_prefixes']:
        raise ConfigurationError("No legacy URL prefixes configured")
    if not all(config['old_prefixes']):
        raise ConfigurationError("Legacy URL prefixes must not be empty")

    return config


def build_url_pattern(old_prefixes: Iterable[str], image_extensions: Iterable[str]):
    """Compile a regex matching image URLs under any of the legacy prefixes."""
    prefixes = '|'.join(re.escape(p) for p in old_prefixes)
    extensions = '|'.join(re.escape(ext.lstrip('.')) for ext in image_extensions)
    return re.compile(rf"(?:{prefixes})/[^\"'\s<>()]+\.(?:{extensions})")


def iter_source_files(root_dir: Path, file_extensions: Iterable[str],
                      ignore: Iterable[str]) -> Iterable[Path]:
    """Yield text files under root_dir with a matching extension."""
    extensions = {ext.lower() for ext in file_extensions}
    ignored = set(ignore)

    for dirpath, dirnames, filenames in os.walk(root_dir):
        dirnames[:] = [d for d in dirnames if d not in ignored and not d.startswith('.')]
        for filename in filenames:
            if os.path.splitext(filename)[1].lower() in extensions:
                yield Path(dirpath) / filename


def find_image_urls(root_dir: Path, config: Dict[str, Any]) -> List[str]:
    """
    Collect distinct legacy image URLs referenced under root_dir.

    Returns:
        URLs in the order they were first seen
    """
    pattern = build_url_pattern(config['old_prefixes'], config['image_extensions'])
    urls = {}

    for file_path in iter_source_files(root_dir, config['file_extensions'], config['ignore']):
        try:
            content = file_path.read_text(encoding='utf-8', errors='replace')
        except OSError as e:
            logger.warning(f"Could not read {file_path}: {e}")
            continue

        for match in pattern.finditer(content):
            urls.setdefault(match.group(0), None)

    return list(urls)


def object_key_for_url(url: str, old_prefixes: Iterable[str]) -> Optional[str]:
    """Strip the legacy prefix from url, returning None if no prefix matches."""
    for prefix in old_prefixes:
        if url.startswith(prefix + '/'):
            return url[len(prefix) + 1:]
    return None


def create_spaces_client(settings: SpacesSettings):
    """Create a boto3 S3 client pointed at the Spaces endpoint."""
    client_config = Config(
        signature_version='s3v4',
        s3={'addressing_style': 'path'}  # Use path-style addressing for compatibility
    )

    client_args = {
        'service_name': 's3',
        'config': client_config,
        'endpoint_url': settings.endpoint_url,
        'region_name': settings.region,
        'aws_access_key_id': settings.access_key,
        'aws_secret_access_key': settings.secret_key,
    }

    if not settings.verify_ssl:
        logger.warning("SSL verification disabled for S3 connection")
        client_args['verify'] = False
        import urllib3
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    logger.info(f"Using S3-compatible endpoint: {settings.endpoint_url}")
    return boto3.client(**client_args)


class ImageMigrator:
    """
    Copies images from their legacy URLs into the Spaces bucket.
    """

    def __init__(self, settings: SpacesSettings, config: Dict[str, Any],
                 s3_client=None, session: Optional[requests.Session] = None):
        """
        Initialize migrator.

        Args:
            settings: Spaces bucket and credentials
            config: Migration config from load_migration_config
            s3_client: boto3 S3 client (created from settings if omitted)
            session: requests session used to fetch images
        """
        self.settings = settings
        self.config = config
        self.s3_client = s3_client
        self.session = session or requests.Session()

    def _fetch(self, url: str):
        response = self.session.get(url, timeout=self.settings.timeout)
        response.raise_for_status()
        return response

    def migrate_url(self, url: str, key: str):
        """
        Download url and upload it to key.

        Raises:
            requests.RequestException, ClientError, BotoCoreError
        """
        response = self._fetch(url)
        content_type = response.headers.get('content-type') or get_content_type(key)

        self.s3_client.put_object(
            Bucket=self.settings.bucket,
            Key=key,
            Body=response.content,
            ACL='public-read',
            ContentType=content_type,
        )

    def migrate(self, urls: List[str], dry_run: bool = False) -> Dict[str, Any]:
        """
        Migrate every URL in order.

        Returns:
            Summary dictionary with total, migrated, failed and failures
        """
        summary = {'total': len(urls), 'migrated': 0, 'failed': 0, 'failures': []}

        if self.s3_client is None and not dry_run:
            self.s3_client = create_spaces_client(self.settings)

        for index, url in enumerate(urls, start=1):
            key = object_key_for_url(url, self.config['old_prefixes'])
            logger.info(f"[{index}/{len(urls)}] Processing: {url}")

            if key is None:
                summary['failed'] += 1
                summary['failures'].append({'url': url, 'key': None, 'error': 'No matching prefix'})
                logger.error(f"  No legacy prefix matches {url}")
                continue

            if dry_run:
                logger.info(f"  Would upload to s3://{self.settings.bucket}/{key}")
                continue

            try:
                self.migrate_url(url, key)
            except (requests.exceptions.RequestException, ClientError, BotoCoreError) as e:
                summary['failed'] += 1
                summary['failures'].append({'url': url, 'key': key, 'error': str(e)})
                logger.error(f"  Failed [{key}]: {e}")
                continue

            summary['migrated'] += 1
            logger.info(f"  Uploaded {key}")

        logger.info(f"Migration complete: {summary['migrated']} migrated, "
                    f"{summary['failed']} failed")
        return summary


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Migrate legacy S3 image URLs to DigitalOcean Spaces'
    )

    parser.add_argument(
        '--config', '-c',
        help='YAML file with old_prefixes, file_extensions, image_extensions and ignore'
    )

    parser.add_argument(
        '--root', '-r',
        default='.',
        help='Directory to scan for image URLs'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='List the URLs that would be migrated without fetching or uploading'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    args = parser.parse_args()

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        settings = load_settings_from_environment()
        config = load_migration_config(args.config)
        if not args.dry_run:
            settings.validate()
    except ConfigurationError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)

    logger.info("Searching for image URLs in the codebase...")
    urls = find_image_urls(Path(args.root), config)
    logger.info(f"Found {len(urls)} images to migrate")

    ImageMigrator(settings, config).migrate(urls, dry_run=args.dry_run)


if __name__ == '__main__':
    main()
