"""
Receipt scanner client configuration.
"""

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Self
from urllib.parse import urlparse

from receipt_scanner.exceptions import ConfigurationError

DEFAULT_SCOPES = ("openid", "profile", "email", "offline_access", "User.Read")

# GUIDs, verified domains and the well-known aliases ("common", "organizations").
_TENANT_PATTERN = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9.-]*[A-Za-z0-9])?$")

ENV_TENANT_ID = "RECEIPT_SCANNER_TENANT_ID"
ENV_CLIENT_ID = "RECEIPT_SCANNER_CLIENT_ID"
ENV_UPLOAD_URL = "RECEIPT_SCANNER_UPLOAD_URL"
ENV_REDIRECT_URI = "RECEIPT_SCANNER_REDIRECT_URI"


def validate_tenant_id(tenant_id: str | None) -> str:
    """
    Check that a tenant identifier is present and well-formed.

    Args:
        tenant_id: Directory (tenant) identifier, domain or alias.

    Returns:
        The tenant identifier, stripped of surrounding whitespace.

    Raises:
        ConfigurationError: If the identifier is absent or malformed.
    """
    if tenant_id is None or not tenant_id.strip():
        msg = "Tenant identifier is required"
        raise ConfigurationError(msg)
    tenant_id = tenant_id.strip()
    if not _TENANT_PATTERN.match(tenant_id):
        msg = "Tenant identifier is malformed"
        raise ConfigurationError(msg, tenant_id=tenant_id)
    return tenant_id


@dataclass(frozen=True, kw_only=True)
class ReceiptScannerConfig:
    """
    Attributes:
        tenant_id: Identity provider tenant (directory) identifier.
        client_id: OAuth client (application) identifier.
        upload_url: Ingestion endpoint receiving one file per request.
        authority_url: Base URL of the identity provider.
        redirect_uri: Redirect URI registered for the client.
        scopes: Scopes requested during sign-in.
        profile_url: User profile endpoint used for session enrichment.
        timeout: Request timeout in seconds for identity calls.
        upload_timeout: Request timeout in seconds for a single upload.
        user_agent: User-Agent header value.
        credential_service: Service name under which the token is stored.
        credential_key: Fixed logical key of the stored token.
        auto_sign_in: Whether to start sign-in once when no session is restored.
    """

    tenant_id: str
    client_id: str
    upload_url: str
    authority_url: str = "https://login.microsoftonline.com"
    redirect_uri: str = "receiptscanner://auth"
    scopes: tuple[str, ...] = DEFAULT_SCOPES
    profile_url: str = "https://graph.microsoft.com/v1.0/me"
    timeout: float = 30.0
    upload_timeout: float = 120.0
    user_agent: str = "ReceiptScanner-Python/0.1"
    credential_service: str = "receipt-scanner"
    credential_key: str = "accessToken"
    auto_sign_in: bool = True

    def __post_init__(self) -> None:
        validate_tenant_id(self.tenant_id)
        if not self.client_id or not self.client_id.strip():
            msg = "Client identifier is required"
            raise ConfigurationError(msg)
        if not _is_http_url(self.upload_url):
            msg = "upload_url must be an absolute http(s) URL"
            raise ConfigurationError(msg, upload_url=self.upload_url)
        if not _is_http_url(self.authority_url):
            msg = "authority_url must be an absolute http(s) URL"
            raise ConfigurationError(msg, authority_url=self.authority_url)
        if not self.redirect_uri:
            msg = "redirect_uri is required"
            raise ConfigurationError(msg)
        if not self.scopes:
            msg = "At least one scope is required"
            raise ConfigurationError(msg)
        if self.timeout <= 0:
            msg = "timeout must be positive"
            raise ConfigurationError(msg)
        if self.upload_timeout <= 0:
            msg = "upload_timeout must be positive"
            raise ConfigurationError(msg)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Self:
        """
        Build a configuration from environment variables.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Raises:
            ConfigurationError: If a required variable is missing.
        """
        env = os.environ if environ is None else environ
        missing = [
            name for name in (ENV_TENANT_ID, ENV_CLIENT_ID, ENV_UPLOAD_URL) if not env.get(name)
        ]
        if missing:
            msg = "Missing required configuration"
            raise ConfigurationError(msg, missing=missing)

        overrides = {}
        if env.get(ENV_REDIRECT_URI):
            overrides["redirect_uri"] = env[ENV_REDIRECT_URI]

        return cls(
            tenant_id=env[ENV_TENANT_ID],
            client_id=env[ENV_CLIENT_ID],
            upload_url=env[ENV_UPLOAD_URL],
            **overrides,
        )

    @property
    def issuer_url(self) -> str:
        """Issuer URL for the configured tenant."""
        return f"{self.authority_url.rstrip('/')}/{self.tenant_id.strip()}/v2.0"

    def discovery_url(self, tenant_id: str) -> str:
        """OpenID configuration URL for a tenant."""
        return f"{self.authority_url.rstrip('/')}/{tenant_id}/v2.0/.well-known/openid-configuration"


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value or "")
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)
