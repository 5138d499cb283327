from collections.abc import AsyncIterator

import pytest
import pytest_asyncio

from receipt_scanner.api.http_client import AsyncHttpClient
from receipt_scanner.config import ReceiptScannerConfig
from receipt_scanner.tests.utils.constants import CLIENT_ID, TENANT_ID, UPLOAD_URL
from receipt_scanner.tests.utils.mock_transport import MockTransport


@pytest.fixture
def config() -> ReceiptScannerConfig:
    return ReceiptScannerConfig(tenant_id=TENANT_ID, client_id=CLIENT_ID, upload_url=UPLOAD_URL)


@pytest.fixture
def mock_transport() -> MockTransport:
    return MockTransport()


@pytest_asyncio.fixture
async def http(
    config: ReceiptScannerConfig, mock_transport: MockTransport
) -> AsyncIterator[AsyncHttpClient]:
    async with AsyncHttpClient(config, transport=mock_transport) as client:
        yield client
