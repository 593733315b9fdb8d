import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from netgraph.domain.network.models import Connection, ConnectionStatus, ProfileRecord, UserRecord
from netgraph.domain.network.repository import InMemoryConnectionGraphRepository
from netgraph.infra import postgres
from netgraph.main import app
from netgraph.settings import settings

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
    from netgraph.infra.redis import redis_client, set_redis_client
    original = redis_client.client
    client = FakeRedis(decode_responses=True)
    set_redis_client(client)
    try:
        yield client
    finally:
        set_redis_client(original)
        await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
    async def _noop():
        return None

    monkeypatch.setattr(postgres, "init_pool", _noop)
    monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
    original_env = settings.environment
    settings.environment = "test"
    try:
        yield
    finally:
        settings.environment = original_env


def _make_user(name: str, role: str = "user", **profile) -> UserRecord:
    first, _, last = name.partition(" ")
    return UserRecord(
        id=str(uuid4()),
        role=role,
        first_name=first,
        last_name=last or None,
        email=f"{first.lower()}@example.com",
        profile=ProfileRecord(**profile) if profile else None,
    )


def _make_edge(
    requester: UserRecord,
    addressee: UserRecord,
    status: ConnectionStatus = ConnectionStatus.ACCEPTED,
    *,
    created_at: datetime = BASE_TIME,
    responded_after: timedelta = timedelta(hours=1),
    **extra,
) -> Connection:
    updated_at = created_at + responded_after if status != ConnectionStatus.PENDING else created_at
    return Connection(
        id=str(uuid4()),
        requester_id=requester.id,
        addressee_id=addressee.id,
        status=status,
        created_at=created_at,
        updated_at=updated_at,
        responded_at=updated_at if status != ConnectionStatus.PENDING else None,
        connected_at=updated_at if status == ConnectionStatus.ACCEPTED else None,
        **extra,
    )


@pytest.fixture
def repo():
    return InMemoryConnectionGraphRepository()


@pytest.fixture
def graph(repo):
    """O -> A -> B -> C chain, all accepted."""
    users = {
        "origin": repo.add_user(_make_user("Olive Origin", headline="Founder")),
        "a": repo.add_user(_make_user("Ada Alpha", role="freelancer")),
        "b": repo.add_user(_make_user("Ben Beta", role="company")),
        "c": repo.add_user(_make_user("Cora Gamma", role="agency")),
    }
    repo.add_edge(_make_edge(users["origin"], users["a"]))
    repo.add_edge(_make_edge(users["a"], users["b"]))
    repo.add_edge(_make_edge(users["b"], users["c"]))
    return users


@pytest_asyncio.fixture
async def api_client(repo):
    app.state.repository = repo
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client
    finally:
        app.state.repository = None


@pytest.fixture
def make_user():
    return _make_user


@pytest.fixture
def make_edge():
    return _make_edge
