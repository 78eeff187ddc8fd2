from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.db.session import engine_options


def test_server_database_is_pooled():
    options = engine_options(
        Settings(_env_file=None, database_url="postgresql+asyncpg://esign:esign@db:5432/esign", database_pool_size=8)
    )

    assert options == {"echo": False, "pool_pre_ping": True, "pool_size": 8}


def test_in_memory_sqlite_shares_one_connection():
    options = engine_options(Settings(_env_file=None, database_url="sqlite+aiosqlite://", database_echo=True))

    assert options["poolclass"] is StaticPool
    assert options["connect_args"] == {"check_same_thread": False}
    assert options["echo"] is True


def test_file_sqlite_keeps_default_pool():
    options = engine_options(Settings(_env_file=None, database_url="sqlite+aiosqlite:///./esign.db"))

    assert "poolclass" not in options
