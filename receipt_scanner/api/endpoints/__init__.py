"""
HTTP endpoint functions grouped by remote service.
"""

from receipt_scanner.api.endpoints.identity import (
    fetch_discovery_document,
    fetch_profile,
    request_token,
)
from receipt_scanner.api.endpoints.ingest import upload_file

__all__ = ["fetch_discovery_document", "fetch_profile", "request_token", "upload_file"]
