import pytest
from typing import Dict, List, Optional
from unittest.mock import AsyncMock, patch
from sqlalchemy.ext.asyncio import create_async_engine
from repwatch.core import database
# Explicit import to ensure metadata is populated
from repwatch.db.models import Base, RepresentativeTelemetry, RepresentativeNetwork
from repwatch.ingestion.geolocation import GeolocationError
from repwatch.ingestion.rpc import RpcError
from repwatch.schemas.network import GeolocationResponse
from repwatch.schemas.telemetry import ConfirmationQuorumResponse, TelemetryResponse


# 1. Function-Scoped Engine on a throwaway sqlite file
@pytest.fixture(scope="function")
async def db_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'repwatch.db'}", echo=False)
    yield engine
    await engine.dispose()

# 2. Patch Startup Events
@pytest.fixture(scope="function", autouse=True)
async def mock_startup_handlers():
    # Prevent real init_db and import runs from starting during API tests
    with patch("repwatch.main.init_db", new_callable=AsyncMock) as mock_init, \
         patch("repwatch.main.trigger_import_job", new_callable=AsyncMock) as mock_import:
        yield mock_init, mock_import

# 3. Function-Scoped DB Setup
@pytest.fixture(scope="function", autouse=True)
async def setup_test_db(db_engine, monkeypatch):
    # Everything resolves database.db_manager at call time
    monkeypatch.setattr(database, "db_manager", database.Database(engine=db_engine))

    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield


# --- Fakes ---

def snapshot(node_id, block_count, cemented_count, address, port=7075, **extra):
    """Raw telemetry item the way a node encodes it: every number as a string."""
    item = {
        "block_count": str(block_count),
        "cemented_count": str(cemented_count),
        "unchecked_count": "0",
        "account_count": "100",
        "bandwidth_cap": "10485760",
        "peer_count": "200",
        "protocol_version": "19",
        "uptime": "3600",
        "genesis_block": "991CF190094C00F0B68E2E5F75F6BEE95A2E0BD93CEAA4A6734DB9F19B728948",
        "major_version": "25",
        "minor_version": "1",
        "patch_version": "0",
        "pre_release_version": "0",
        "maker": "0",
        "timestamp": "1700000000123",
        "active_difficulty": "fffffff800000000",
        "node_id": node_id,
        "signature": "00",
        "address": address,
        "port": str(port),
    }
    item.update(extra)
    return item


def peer(account, ip, weight="1000"):
    return {"account": account, "ip": ip, "weight": weight}


class FakeRpc:
    def __init__(self, telemetry: Optional[dict] = None, quorum: Optional[Dict[str, dict]] = None):
        self._telemetry = telemetry
        self._quorum = quorum or {}
        self.quorum_calls: List[str] = []

    async def telemetry(self, url=None):
        if self._telemetry is None or "error" in self._telemetry:
            raise RpcError((self._telemetry or {}).get("error", "unreachable"))
        return TelemetryResponse.model_validate(self._telemetry)

    async def confirmation_quorum(self, url=None):
        self.quorum_calls.append(url)
        body = self._quorum.get(url)
        if body is None or "error" in body:
            raise RpcError((body or {}).get("error", "unreachable"), url=url)
        return ConfirmationQuorumResponse.model_validate(body)


class FakeGeolocation:
    def __init__(self, responses: Optional[Dict[str, dict]] = None):
        self._responses = responses or {}
        self.calls: List[str] = []

    async def lookup(self, ip):
        self.calls.append(ip)
        body = self._responses.get(ip)
        if body is None:
            raise GeolocationError(f"no response for {ip}")
        return GeolocationResponse.model_validate(body)


class FakeClock:
    def __init__(self, start=0.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock(start=1000.0)
