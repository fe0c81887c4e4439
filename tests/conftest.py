# tests/conftest.py

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from fraudscore.core.config import Settings
from fraudscore.core.rate_limit import limiter
from fraudscore.domain.entities.risk import Location, TransactionRiskInput
from fraudscore.domain.services.history_service import HistoryStore
from fraudscore.infra.db.session import build_engine, build_sessionmaker, init_db
from fraudscore.infra.detectors.device_intel import DeviceVerdict

DAYTIME = datetime(2024, 6, 1, 14, 0, 0, tzinfo=timezone.utc)
ODD_HOUR = datetime(2024, 6, 1, 3, 0, 0, tzinfo=timezone.utc)


def make_tx(**overrides) -> TransactionRiskInput:
    """Transaction with only the required fields plus a daytime timestamp."""
    fields = {
        "transaction_id": "tx_1",
        "user_id": "user_1",
        "amount": Decimal("50"),
        "timestamp": DAYTIME,
    }
    fields.update(overrides)
    return TransactionRiskInput(**fields)


def make_location(country="US", city="Austin") -> Location:
    return Location(country=country, city=city)


@pytest.fixture(autouse=True)
def no_rate_limit():
    limiter.enabled = False
    yield
    limiter.enabled = True


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'fraudscore.db'}",
        REDIS_URL=None,
        DEVICE_INTEL_URL=None,
        LOOKUP_TIMEOUT_SECONDS=2.0,
        _env_file=None,
    )


@pytest.fixture
def client(test_settings):
    from fraudscore.main import create_app

    app = create_app(test_settings)
    with TestClient(app) as c:
        yield c


@pytest_asyncio.fixture
async def history_store(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'history.db'}")
    await init_db(engine)
    yield HistoryStore(build_sessionmaker(engine))
    await engine.dispose()


@pytest.fixture
def fake_history():
    history = MagicMock()
    history.count_recent_transactions = AsyncMock(return_value=0)
    history.is_known_device = AsyncMock(return_value=False)
    history.count_similar_cases = AsyncMock(return_value=0)
    history.record_assessment = AsyncMock(return_value=None)
    return history


@pytest.fixture
def fake_device_intel():
    intel = MagicMock()
    intel.lookup = AsyncMock(return_value=DeviceVerdict())
    return intel
