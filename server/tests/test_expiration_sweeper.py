import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

from redis.exceptions import ConnectionError as RedisConnectionError

from app.models.document_signature import SignatureStatus
from app.schemas.signature_request import SignatureRequestCreate
from app.services import signature_request_service
from app.services.expiration_sweeper import LOCK_KEY, ExpirationSweeper


class FakeRedis:
    """Just enough of redis.asyncio.Redis for SET NX locking."""

    def __init__(self):
        self.store: dict[str, bytes] = {}

    async def set(self, key, value, nx=False, ex=None):
        if nx and key in self.store:
            return None
        self.store[key] = value.encode() if isinstance(value, str) else value
        return True

    async def get(self, key):
        return self.store.get(key)

    async def delete(self, key):
        self.store.pop(key, None)


async def _overdue_request(session, make_document_signature):
    signature = await make_document_signature()
    request = await signature_request_service.create_signature_request(
        session,
        SignatureRequestCreate(
            document_signature_id=signature.id,
            expiration_date=datetime.now(timezone.utc) - timedelta(minutes=5),
        ),
    )
    await session.commit()
    return request


async def test_run_once_without_redis(session_factory, session, make_document_signature):
    request = await _overdue_request(session, make_document_signature)
    sweeper = ExpirationSweeper(session_factory)

    result = await sweeper.run_once()

    assert [item.id for item in result.expired] == [request.id]
    assert result.expired[0].request_status == SignatureStatus.EXPIRED


async def test_lock_is_released_after_sweep(session_factory, session, make_document_signature):
    await _overdue_request(session, make_document_signature)
    redis = FakeRedis()
    sweeper = ExpirationSweeper(session_factory, redis_client=redis)

    first = await sweeper.run_once()
    second = await sweeper.run_once()

    assert len(first.expired) == 1
    assert second.expired == []
    assert LOCK_KEY not in redis.store


async def test_lock_held_elsewhere_skips_the_sweep(session_factory, session, make_document_signature):
    request = await _overdue_request(session, make_document_signature)
    redis = FakeRedis()
    redis.store[LOCK_KEY] = b"other-replica"
    sweeper = ExpirationSweeper(session_factory, redis_client=redis)

    assert await sweeper.run_once() is None

    await session.refresh(request)
    assert request.request_status == SignatureStatus.PENDING
    assert redis.store[LOCK_KEY] == b"other-replica"


async def test_unreachable_redis_does_not_block_the_sweep(session_factory, session, make_document_signature):
    await _overdue_request(session, make_document_signature)
    redis = AsyncMock()
    redis.set.side_effect = RedisConnectionError("connection refused")
    redis.get.side_effect = RedisConnectionError("connection refused")
    sweeper = ExpirationSweeper(session_factory, redis_client=redis)

    result = await sweeper.run_once()

    assert len(result.expired) == 1


async def test_run_loop_stops(session_factory):
    sweeper = ExpirationSweeper(session_factory, interval_seconds=1)

    task = asyncio.create_task(sweeper.run())
    await asyncio.sleep(0.05)
    assert sweeper.running

    sweeper.stop()
    await asyncio.wait_for(task, timeout=3)
    assert not sweeper.running
