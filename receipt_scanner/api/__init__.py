"""
HTTP client layer.

Provides async HTTP communication with the identity provider and the
ingestion endpoint.
"""

from receipt_scanner.api.http_client import AsyncHttpClient, sanitize_for_log

__all__ = ["AsyncHttpClient", "sanitize_for_log"]
