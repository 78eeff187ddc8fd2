from __future__ import annotations

import asyncio
import time
import uuid
from datetime import datetime
from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.logging import get_logger
from app.services.signature_request_service import ExpirationSweepResult, process_expired_requests

logger = get_logger(__name__)

LOCK_KEY = "esign:signature-sweep:lock"


class ExpirationSweeper:
    """
    Periodically expires PENDING signature requests past their deadline.

    Replicas coordinate through an optional Redis lock so they do not sweep at
    the same moment. Correctness never depends on it: each row is expired by a
    version-guarded conditional update.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        interval_seconds: int = 300,
        redis_client: Optional[Redis] = None,
        lock_ttl_seconds: int = 240,
    ):
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds
        self.redis_client = redis_client
        self.lock_ttl_seconds = lock_ttl_seconds
        self._running = False
        self._run_count = 0
        self._expired_count = 0

    async def _acquire_lock(self, token: str) -> bool:
        if self.redis_client is None:
            return True
        try:
            return bool(await self.redis_client.set(LOCK_KEY, token, nx=True, ex=self.lock_ttl_seconds))
        except RedisError as exc:
            logger.warning("signature_sweep.lock_unavailable", error=str(exc))
            return True

    async def _release_lock(self, token: str) -> None:
        if self.redis_client is None:
            return
        try:
            current = await self.redis_client.get(LOCK_KEY)
            if current in (token, token.encode()):
                await self.redis_client.delete(LOCK_KEY)
        except RedisError as exc:
            logger.warning("signature_sweep.lock_release_failed", error=str(exc))

    async def run_once(self, now: Optional[datetime] = None) -> Optional[ExpirationSweepResult]:
        """Run a single sweep. Returns None when another replica holds the lock."""
        token = uuid.uuid4().hex
        if not await self._acquire_lock(token):
            logger.info("signature_sweep.lock_held_elsewhere")
            return None

        try:
            async with self.session_factory() as session:
                result = await process_expired_requests(session, now=now)
        finally:
            await self._release_lock(token)

        self._run_count += 1
        self._expired_count += len(result.expired)
        return result

    async def run(self) -> None:
        """Sweep at a fixed interval until stop() is called."""
        self._running = True
        logger.info("signature_sweep.started", interval_seconds=self.interval_seconds)

        try:
            while self._running:
                start = time.monotonic()

                try:
                    await self.run_once()
                except Exception as exc:
                    logger.error("signature_sweep.failed", error=str(exc), exc_info=True)

                elapsed = time.monotonic() - start
                sleep_time = max(0, self.interval_seconds - elapsed)
                if sleep_time > 0 and self._running:
                    await asyncio.sleep(sleep_time)
        finally:
            self._running = False
            logger.info(
                "signature_sweep.stopped",
                runs=self._run_count,
                expired=self._expired_count,
            )

    def stop(self) -> None:
        self._running = False

    @property
    def running(self) -> bool:
        return self._running
