#!/usr/bin/env python3
"""
Unit tests for AWS Signature Version 4 request signing
"""

import hashlib
import hmac
import unittest
import sys
from datetime import datetime, timezone, timedelta
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from spaces_signer import (
    build_canonical_request,
    build_signed_headers,
    derive_signing_key,
    format_amz_date,
    sign_request,
)


class TestFormatAmzDate(unittest.TestCase):

    def test_utc_timestamp(self):
        """Test formatting an aware UTC timestamp."""
        ts = datetime(2024, 3, 9, 7, 5, 2, tzinfo=timezone.utc)
        self.assertEqual(format_amz_date(ts), '20240309T070502Z')

    def test_naive_timestamp_treated_as_utc(self):
        """Test naive datetimes are not shifted."""
        ts = datetime(2024, 3, 9, 7, 5, 2)
        self.assertEqual(format_amz_date(ts), '20240309T070502Z')

    def test_other_timezone_converted(self):
        """Test non-UTC timestamps are converted to UTC."""
        ts = datetime(2024, 3, 9, 1, 0, 0, tzinfo=timezone(timedelta(hours=7)))
        self.assertEqual(format_amz_date(ts), '20240308T180000Z')

    def test_default_is_now(self):
        """Test the default timestamp has the expected shape."""
        amz_date = format_amz_date()
        self.assertEqual(len(amz_date), 16)
        self.assertEqual(amz_date[8], 'T')
        self.assertTrue(amz_date.endswith('Z'))


class TestSignRequest(unittest.TestCase):

    def setUp(self):
        """Set up fixed signing inputs."""
        self.timestamp = datetime(2024, 1, 15, 12, 30, 45, tzinfo=timezone.utc)
        self.headers = {
            'Content-Type': 'text/html',
            'x-amz-acl': 'public-read',
            'Content-Length': '1024',
        }
        self.kwargs = {
            'secret_key': 'test-secret',
            'access_key': 'TESTACCESSKEY',
            'region': 'nyc3',
            'timestamp': self.timestamp,
        }

    def _sign(self, headers=None, **overrides):
        kwargs = dict(self.kwargs)
        kwargs.update(overrides)
        return sign_request('PUT', 'my-site', 'css/site.css',
                            headers if headers is not None else self.headers, **kwargs)

    def test_canonical_request_layout(self):
        """Test canonical request lines, header order and payload sentinel."""
        canonical_request, signed_headers = build_canonical_request(
            'PUT', 'my-site', 'css/site.css', self.headers
        )

        expected = '\n'.join([
            'PUT',
            '/my-site/css/site.css',
            '',
            'content-length:1024\ncontent-type:text/html\nx-amz-acl:public-read\n',
            'content-length;content-type;x-amz-acl',
            'UNSIGNED-PAYLOAD',
        ])
        self.assertEqual(canonical_request, expected)
        self.assertEqual(signed_headers, 'content-length;content-type;x-amz-acl')

    def test_string_to_sign(self):
        """Test the string to sign is built from the canonical request hash."""
        signed = self._sign()

        canonical_hash = hashlib.sha256(signed['canonical_request'].encode('utf-8')).hexdigest()
        self.assertEqual(
            signed['string_to_sign'],
            f"AWS4-HMAC-SHA256\n20240115T123045Z\n20240115/nyc3/s3/aws4_request\n{canonical_hash}"
        )

    def test_signing_key_chain(self):
        """Test the signing key is the HMAC chain over date, region, service."""
        def step(key, msg):
            return hmac.new(key, msg.encode('utf-8'), hashlib.sha256).digest()

        expected = step(step(step(step(b'AWS4test-secret', '20240115'), 'nyc3'), 's3'), 'aws4_request')
        self.assertEqual(derive_signing_key('test-secret', '20240115', 'nyc3'), expected)

    def test_signature_and_authorization(self):
        """Test the final signature and Authorization header value."""
        signed = self._sign()

        signing_key = derive_signing_key('test-secret', '20240115', 'nyc3')
        expected_signature = hmac.new(
            signing_key, signed['string_to_sign'].encode('utf-8'), hashlib.sha256
        ).hexdigest()

        self.assertEqual(signed['signature'], expected_signature)
        self.assertEqual(
            signed['authorization'],
            'AWS4-HMAC-SHA256 Credential=TESTACCESSKEY/20240115/nyc3/s3/aws4_request, '
            f'SignedHeaders=content-length;content-type;x-amz-acl, Signature={expected_signature}'
        )
        self.assertEqual(signed['amz_date'], '20240115T123045Z')

    def test_deterministic(self):
        """Test identical inputs produce identical authorization."""
        self.assertEqual(self._sign()['authorization'], self._sign()['authorization'])

    def test_header_value_change_changes_signature(self):
        """Test changing any single header value changes the signature."""
        baseline = self._sign()['signature']

        for name in self.headers:
            changed = dict(self.headers)
            changed[name] = changed[name] + 'x'
            with self.subTest(header=name):
                self.assertNotEqual(self._sign(headers=changed)['signature'], baseline)

    def test_timestamp_change_changes_signature(self):
        """Test a one second difference produces a different signature."""
        later = self.timestamp + timedelta(seconds=1)
        self.assertNotEqual(self._sign()['signature'], self._sign(timestamp=later)['signature'])

    def test_header_name_case_does_not_matter(self):
        """Test header names are lower-cased before signing."""
        upper = {k.upper(): v for k, v in self.headers.items()}
        self.assertEqual(self._sign()['signature'], self._sign(headers=upper)['signature'])

    def test_credentials_and_region_in_scope(self):
        """Test other regions and secrets change the signature."""
        baseline = self._sign()['signature']
        self.assertNotEqual(self._sign(region='ams3')['signature'], baseline)
        self.assertNotEqual(self._sign(secret_key='other-secret')['signature'], baseline)


class TestBuildSignedHeaders(unittest.TestCase):

    def test_headers_include_authorization_and_date(self):
        """Test the outgoing headers keep the signed values unchanged."""
        timestamp = datetime(2024, 1, 15, 12, 30, 45, tzinfo=timezone.utc)
        headers = {'Content-Type': 'image/png', 'x-amz-acl': 'public-read', 'Content-Length': '3'}

        result = build_signed_headers('PUT', 'bucket', 'a.png', headers,
                                      secret_key='s', access_key='a', region='nyc3',
                                      timestamp=timestamp)

        signed = sign_request('PUT', 'bucket', 'a.png', headers, 's', 'a', 'nyc3', timestamp)
        self.assertEqual(result['Authorization'], signed['authorization'])
        self.assertEqual(result['x-amz-date'], '20240115T123045Z')
        for name, value in headers.items():
            self.assertEqual(result[name], value)
        # Input mapping is not modified
        self.assertNotIn('Authorization', headers)


if __name__ == '__main__':
    unittest.main()
