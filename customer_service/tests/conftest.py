import pytest
import pytest_asyncio
import fakeredis
from httpx import ASGITransport, AsyncClient

from app.core.indexer import IndexMaintainer
from app.core.reader import IndexReader
from app.core.resolver import resolve
from app.core.store import CustomerRecordStore
from app.schemas.customer import CustomerRecord


@pytest_asyncio.fixture
async def redis():
    # Private server per test so state never leaks between tests
    client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def store(redis):
    return CustomerRecordStore(redis)


@pytest.fixture
def indexer(redis, store):
    return IndexMaintainer(redis, store)


@pytest.fixture
def reader(redis):
    return IndexReader(redis)


@pytest.fixture
def make_record():
    def _make(customer_id, items=None, email=None, **extra):
        payload = {"id": customer_id, "rewards": items or [], **extra}
        if email is not None:
            payload["email"] = email
        return CustomerRecord.model_validate(payload)
    return _make


@pytest.fixture
def assert_index_consistent(redis, store, reader):
    """Checks forward sets against documents and reverse sets against forward sets."""
    async def _check(customer_ids):
        dump = await reader.dump_index()
        for customer_id in customer_ids:
            record = await store.get_by_id(customer_id)
            expected = resolve(record.token_items) if record else resolve([])

            businesses = set(await reader.businesses_for_customer(customer_id))
            tokens = set(await reader.tokens_for_customer(customer_id))
            assert businesses == expected.business_ids, customer_id
            assert tokens == expected.all_token_ids, customer_id

            for key, members in dump.items():
                if key.startswith("business:"):
                    business_id = key[len("business:"):-len(":customers")]
                    assert (customer_id in members) == (business_id in businesses), key
                elif key.startswith("token:"):
                    token_id = key[len("token:"):-len(":customers")]
                    assert (customer_id in members) == (token_id in tokens), key
    return _check


@pytest_asyncio.fixture
async def client(redis):
    """HTTPX async client against the service app, backed by the fake Redis."""
    from main import app

    app.state.redis = redis
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def admin_headers():
    from app.core.config import settings
    return {"x-admin-token": settings.ADMIN_TOKEN.get_secret_value()}
