from unittest.mock import AsyncMock, Mock

import pytest

from receipt_scanner.models.auth import DiscoveryDocument
from receipt_scanner.services.discovery import DiscoveryResolver
from receipt_scanner.services.pkce import PkceAuthorizer
from receipt_scanner.services.token_service import TokenExchanger
from receipt_scanner.tests.utils.constants import (
    AUTHORIZATION_ENDPOINT,
    TENANT_ID,
    TOKEN_ENDPOINT,
)


@pytest.fixture
def discovery() -> DiscoveryDocument:
    return DiscoveryDocument(
        tenant_id=TENANT_ID,
        issuer=None,
        authorization_endpoint=AUTHORIZATION_ENDPOINT,
        token_endpoint=TOKEN_ENDPOINT,
    )


@pytest.fixture
def launcher() -> Mock:
    return Mock(return_value=None)


@pytest.fixture
def authorizer(launcher: Mock) -> PkceAuthorizer:
    return PkceAuthorizer(launcher)


@pytest.fixture
def mock_resolver(discovery: DiscoveryDocument) -> Mock:
    resolver = Mock(spec=DiscoveryResolver)
    resolver.resolve = AsyncMock(return_value=discovery)
    return resolver


@pytest.fixture
def mock_exchanger() -> Mock:
    exchanger = Mock(spec=TokenExchanger)
    exchanger.exchange = AsyncMock()
    exchanger.create_session = AsyncMock()
    return exchanger
