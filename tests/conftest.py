"""
pytest configuration for dataverse_client tests.

Adds src directory to Python path for imports and sets up shared fixtures.
"""

import sys
from pathlib import Path

import pytest

# Add src and tests directories to Python path
tests_dir = Path(__file__).parent
src_dir = tests_dir.parent / "src"
sys.path.insert(0, str(src_dir))
sys.path.insert(0, str(tests_dir))

from dataverse_client.codec import EntityCodec  # noqa: E402
from dataverse_client.config import DataverseConfig  # noqa: E402
from dataverse_client.logging import clear_log_context  # noqa: E402
from support import ORG_URL, FakeTransport, account_mapping, contact_mapping  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_log_context():
    clear_log_context()
    yield
    clear_log_context()


@pytest.fixture
def codec():
    """Codec with Contact and Account mappings registered."""
    return EntityCodec([contact_mapping(), account_mapping()])


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def dataverse_config():
    return DataverseConfig(
        organization_url=ORG_URL,
        tenant_id="tenant-123",
        client_id="client-abc",
        client_secret="super-secret-value",
    )
