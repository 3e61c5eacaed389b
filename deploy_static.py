#!/usr/bin/env python3
"""
Deploy a static site export to DigitalOcean Spaces (S3-compatible).

Walks the source directory and PUTs every file, one at a time, signed
with AWS Signature Version 4. Works without s3cmd or the AWS CLI.

Requires environment variables (or a .env file):
    DO_SPACES_BUCKET
    DO_SPACES_ACCESS_KEY
    DO_SPACES_SECRET_KEY
    DO_SPACES_REGION (optional, defaults to nyc3)
    DO_SPACES_ENDPOINT (optional, derived from the region)
    SOURCE_DIR (optional, defaults to publish)
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from site_files import list_site_files
from spaces_config import SpacesSettings, load_settings_from_environment
from spaces_errors import ConfigurationError, UploadError
from spaces_uploader import SpacesUploader

logger = logging.getLogger(__name__)


class StaticSiteDeployer:
    """
    Uploads every file of a site export, strictly one after another.

    A failed file is recorded and the run carries on with the next one.
    """

    def __init__(self, settings: SpacesSettings, uploader: Optional[SpacesUploader] = None):
        self.settings = settings
        self.uploader = uploader

    def check_configuration(self) -> Path:
        """
        Validate credentials and the source directory.

        Returns:
            The source directory

        Raises:
            ConfigurationError: if anything required is missing
        """
        self.settings.validate()

        source_dir = Path(self.settings.source_dir)
        if not source_dir.is_dir():
            raise ConfigurationError(f"Source directory '{source_dir}' does not exist")
        return source_dir

    def run(self) -> Dict[str, Any]:
        """
        Run the deployment.

        Returns:
            Summary dictionary with total, uploaded, failed, failures and
            uploads (the result of each successful upload)

        Raises:
            ConfigurationError: before any file is listed or uploaded
        """
        source_dir = self.check_configuration()

        if self.uploader is None:
            self.uploader = SpacesUploader(self.settings)

        logger.info("Starting deployment...")
        logger.info(f"  Bucket: {self.settings.bucket}")
        logger.info(f"  Region: {self.settings.region}")
        logger.info(f"  Endpoint: {self.settings.endpoint_url}")
        logger.info(f"  Source: {source_dir}")

        files = list_site_files(source_dir)
        total = len(files)
        summary = {
            'total': total,
            'uploaded': 0,
            'failed': 0,
            'failures': [],
            'uploads': [],
        }

        logger.info(f"Uploading {total} files...")

        for entry in files:
            key = entry['key']
            try:
                result = self.uploader.upload_file(entry)
            except UploadError as e:
                summary['failed'] += 1
                summary['failures'].append({
                    'key': key,
                    'success': False,
                    'error': e.message,
                    'status_code': e.status_code,
                })
                logger.error(f"Failed to upload {key}: {e.message}")
                continue

            summary['uploaded'] += 1
            summary['uploads'].append(result)
            logger.info(f"[{summary['uploaded']}/{total}] {key}")

        self._log_summary(summary)
        return summary

    def _log_summary(self, summary: Dict[str, Any]):
        if summary['failed'] == 0:
            logger.info("Deployment completed successfully!")
            logger.info(f"  Uploaded: {summary['uploaded']} files")
        else:
            logger.warning(f"Deployment completed with {summary['failed']} failures")
            logger.warning(f"  Uploaded: {summary['uploaded']} files")
            logger.warning(f"  Failed: {summary['failed']} files")
            for failure in summary['failures']:
                logger.warning(f"    {failure['key']}: {failure['error']}")

        logger.info(f"Your site should be available at: {self.settings.site_url}")


def deploy(settings: SpacesSettings, uploader: Optional[SpacesUploader] = None) -> Dict[str, Any]:
    """Deploy settings.source_dir to the configured bucket and return the summary."""
    return StaticSiteDeployer(settings, uploader).run()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Deploy the static site export to DigitalOcean Spaces. '
                    'All configuration is read from the environment.'
    )
    parser.parse_args()

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    settings = None
    try:
        settings = load_settings_from_environment()
        summary = deploy(settings)
    except ConfigurationError as e:
        logger.error(f"Error: {e}")
        if settings is not None and settings.missing_fields():
            logger.error("Please set DO_SPACES_BUCKET, DO_SPACES_ACCESS_KEY and "
                         "DO_SPACES_SECRET_KEY (DO_SPACES_REGION is optional, "
                         "defaults to nyc3), or add them to your .env file")
        sys.exit(1)

    fail_on_error = os.getenv('DEPLOY_FAIL_ON_ERROR', 'false').lower() == 'true'
    if summary['failed'] and fail_on_error:
        logger.error("DEPLOY_FAIL_ON_ERROR is set, exiting with failure")
        sys.exit(1)


if __name__ == '__main__':
    main()
