"""
Identity provider discovery.

Resolves and caches the OpenID configuration of each tenant.
"""

import structlog

from receipt_scanner.api.endpoints.identity import fetch_discovery_document
from receipt_scanner.api.http_client import AsyncHttpClient
from receipt_scanner.config import ReceiptScannerConfig, validate_tenant_id
from receipt_scanner.core.cache import CoalescingCache
from receipt_scanner.exceptions import APIError, DiscoveryError
from receipt_scanner.models.auth import DiscoveryDocument

logger = structlog.get_logger(__name__)


class DiscoveryResolver:
    """
    Resolves provider metadata from a tenant identifier.

    Each tenant is fetched at most once per resolver; concurrent callers
    share the in-flight fetch. A failed fetch is not cached.
    """

    def __init__(self, http: AsyncHttpClient, config: ReceiptScannerConfig) -> None:
        """
        Args:
            http: HTTP client for API requests.
            config: Client configuration (provides the authority URL).
        """
        self._http = http
        self._config = config
        self._cache: CoalescingCache[DiscoveryDocument] = CoalescingCache()

    async def resolve(self, tenant_id: str | None) -> DiscoveryDocument:
        """
        Resolve the discovery document for a tenant.

        Args:
            tenant_id: Tenant identifier.

        Returns:
            Cached or freshly fetched DiscoveryDocument.

        Raises:
            ConfigurationError: If the tenant is absent or malformed (no request is made).
            DiscoveryError: If the document lacks required endpoints.
            APIError: If the provider answers with a non-success status.
            NetworkError: If the provider cannot be reached.
        """
        tenant_id = validate_tenant_id(tenant_id)
        return await self._cache.get_or_load(tenant_id, lambda: self._fetch(tenant_id))

    async def _fetch(self, tenant_id: str) -> DiscoveryDocument:
        url = self._config.discovery_url(tenant_id)
        logger.info("Fetching discovery document", tenant_id=tenant_id)
        try:
            payload = await fetch_discovery_document(self._http, url)
        except APIError as e:
            logger.warning(
                "Discovery request failed", tenant_id=tenant_id, status_code=e.status_code
            )
            raise

        authorization_endpoint = payload.get("authorization_endpoint")
        token_endpoint = payload.get("token_endpoint")
        if not authorization_endpoint or not token_endpoint:
            msg = "Discovery document is missing required endpoints"
            raise DiscoveryError(msg, tenant_id=tenant_id)

        return DiscoveryDocument(
            tenant_id=tenant_id,
            issuer=payload.get("issuer"),
            authorization_endpoint=authorization_endpoint,
            token_endpoint=token_endpoint,
            userinfo_endpoint=payload.get("userinfo_endpoint"),
            end_session_endpoint=payload.get("end_session_endpoint"),
        )

    def cached(self, tenant_id: str) -> DiscoveryDocument | None:
        """Return the cached document for a tenant without fetching."""
        return self._cache.get(tenant_id)
