import json
import pytest
from unittest.mock import AsyncMock, patch
from redis.exceptions import ConnectionError as RedisConnectionError

from app.core.backfill import BackfillJob


async def seed(store, make_record):
    """Documents written without the index, as legacy data was."""
    await store.replace("c1", make_record("c1", [{"id": "r1", "businessId": "b1"}], email="one@example.com"))
    await store.replace("c2", make_record("c2", [
        {"id": "r1", "businessName": "business_2"},
        {"id": "campaign-d9-fall", "businessId": "b1"},
    ], email="two@example.com"))
    await store.replace("c3", make_record("c3", [], email="three@example.com"))


@pytest.mark.asyncio
async def test_backfill_builds_index_from_documents(redis, store, reader, make_record, assert_index_consistent):
    await seed(store, make_record)

    report = await BackfillJob(redis, store, page_size=2).run()

    assert report.processed == 3
    assert report.with_links == 2
    assert report.business_links_written == 3
    assert report.token_links_written == 4
    assert report.malformed == 0

    assert await reader.customers_for_business("b1") == ["c1", "c2"]
    assert await reader.customers_for_business("business_2") == ["c2"]
    assert await reader.customers_for_token("r1") == ["c1", "c2"]
    assert await reader.customers_for_token("d9") == ["c2"]
    assert await reader.tokens_for_customer("c2") == ["campaign-d9-fall", "d9", "r1"]
    await assert_index_consistent(["c1", "c2", "c3"])


@pytest.mark.asyncio
async def test_backfill_is_idempotent(redis, store, reader, make_record):
    await seed(store, make_record)
    job = BackfillJob(redis, store, page_size=1)

    first_report = await job.run()
    first = await reader.dump_index()
    second_report = await job.run()
    second = await reader.dump_index()

    assert first == second
    assert first_report == second_report


@pytest.mark.asyncio
async def test_backfill_skips_lookup_and_index_keys(redis, store, make_record):
    await seed(store, make_record)
    await redis.set("customer:phone:447700900000", json.dumps({"customerId": "c1"}))

    with patch.object(store, "get_by_id", wraps=store.get_by_id) as get_by_id:
        await BackfillJob(redis, store).run()
        # Second run also sees the forward index keys written by the first
        await BackfillJob(redis, store).run()

    visited = {call.args[0] for call in get_by_id.call_args_list}
    assert visited == {"c1", "c2", "c3"}


@pytest.mark.asyncio
async def test_backfill_only_grows_reverse_sets(redis, store, reader, make_record):
    await seed(store, make_record)
    await redis.sadd("business:b1:customers", "stale-customer")

    await BackfillJob(redis, store).run()

    assert await reader.customers_for_business("b1") == ["c1", "c2", "stale-customer"]


@pytest.mark.asyncio
async def test_backfill_rewrites_forward_sets_exactly(redis, store, reader, make_record):
    await seed(store, make_record)
    await redis.sadd("customer:c1:businesses", "gone")
    await redis.sadd("customer:c3:tokens", "gone")

    await BackfillJob(redis, store).run()

    assert await reader.businesses_for_customer("c1") == ["b1"]
    assert await reader.tokens_for_customer("c3") == []


@pytest.mark.asyncio
async def test_backfill_continues_past_malformed_records(redis, store, reader, make_record):
    await seed(store, make_record)
    await redis.set("customer:broken", "{not json")

    report = await BackfillJob(redis, store).run()

    assert report.malformed == 1
    assert report.processed == 3
    assert await reader.customers_for_token("r1") == ["c1", "c2"]


@pytest.mark.asyncio
async def test_backfill_empty_store(redis, store, reader):
    report = await BackfillJob(redis, store).run()

    assert report.processed == 0
    assert await reader.dump_index() == {}


@pytest.mark.asyncio
async def test_backfill_store_failure_aborts(redis, store, make_record):
    await seed(store, make_record)

    with patch.object(redis, "sadd", AsyncMock(side_effect=RedisConnectionError("down"))):
        with pytest.raises(RedisConnectionError):
            await BackfillJob(redis, store).run()


@pytest.mark.asyncio
async def test_backfill_matches_incremental_maintenance(redis, store, indexer, reader, make_record):
    items = [{"id": "r1", "businessId": "b1"}, {"id": "campaign-d2-x", "businessName": "business_5"}]
    await indexer.replace_and_reindex("c1", make_record("c1", items))
    incremental = await reader.dump_index()

    await BackfillJob(redis, store).run()

    assert await reader.dump_index() == incremental


@pytest.mark.asyncio
async def test_backfill_links_records_with_odd_identifier_types(redis, store, reader, make_record):
    await store.replace("c1", make_record("c1", [
        {"id": "r1", "businessId": "b1"},
        {"id": "r2", "businessId": True},
        {"id": "r3", "business_id": "b9"},
    ]))

    report = await BackfillJob(redis, store).run()

    assert report.malformed == 0
    assert report.with_links == 1
    assert await reader.customers_for_business("b1") == ["c1"]
    assert await reader.businesses_for_customer("c1") == ["b1", "true"]
    assert await reader.tokens_for_customer("c1") == ["r1", "r2", "r3"]
    assert await reader.customers_for_business("b9") == []
