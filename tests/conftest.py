"""
Pytest configuration and fixtures.
"""
import os
import tempfile
from decimal import Decimal

_TMP_DIR = tempfile.mkdtemp(prefix="khqrgen-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'khqrgen.db')}"
os.environ["API_KEY"] = "test-key"
os.environ["LOGGING__JSON_LOGS"] = "false"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from khqrgen.api import app  # noqa: E402
from khqrgen.khqr_encoder import Currency, PaymentDescriptor  # noqa: E402
from khqrgen.models import Base, engine  # noqa: E402

API_HEADERS = {"X-API-Key": "test-key"}


async def _reset_tables() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture(scope="session")
def app_client():
    """Single client so every request shares one event loop and engine pool."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def client(app_client):
    """Client with empty tables."""
    app_client.portal.call(_reset_tables)
    return app_client


@pytest.fixture
def headers():
    return dict(API_HEADERS)


@pytest.fixture
def descriptor():
    """The reference merchant@bakong order."""
    return PaymentDescriptor(
        merchant_id="merchant@bakong",
        merchant_name="GameHost",
        merchant_city="Phnom Penh",
        currency=Currency.USD,
        amount=Decimal("10.00"),
        transaction_id="ORDER123",
    )
