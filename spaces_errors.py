#!/usr/bin/env python3
"""
Errors raised by the static site deployer.
"""

from typing import Optional


class ConfigurationError(Exception):
    """Required configuration is missing or the source directory does not exist."""


class UploadError(Exception):
    """
    A single object could not be uploaded.

    Covers non-2xx responses, network failures and files that could not be
    read. The deploy run records it and moves on to the next file.
    """

    def __init__(self, key: str, message: str,
                 status_code: Optional[int] = None, body: Optional[str] = None):
        self.key = key
        self.message = message
        self.status_code = status_code
        self.body = body
        super().__init__(message)
