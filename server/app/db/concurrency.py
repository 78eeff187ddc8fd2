from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.core.errors import ConcurrentModificationError


async def flush_versioned(session: AsyncSession, resource: str, identifier: str) -> None:
    """Flush pending changes, reporting a lost optimistic-lock race as ConcurrentModificationError."""
    try:
        await session.flush()
    except StaleDataError as exc:
        await session.rollback()
        raise ConcurrentModificationError(resource, identifier) from exc


def ensure_expected_version(current: int, expected: int | None, resource: str, identifier: str) -> None:
    if expected is not None and expected != current:
        raise ConcurrentModificationError(resource, identifier)
