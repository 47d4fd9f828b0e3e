# DB connections

from pathlib import Path

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker


def sqlite_url(path: str) -> str:
    """Async SQLite URL for a database file, creating its directory"""
    if path != ":memory:":
        Path(path).expanduser().parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite+aiosqlite:///{path}"


def create_engine(url: str, echo: bool = False, timeout: float = 10.0) -> AsyncEngine:
    """Async engine tuned per dialect"""
    backend = make_url(url).get_backend_name()

    if backend == "sqlite":
        # The driver waits up to `timeout` seconds on a locked database
        return create_async_engine(
            url,
            echo=echo,
            connect_args={"timeout": timeout}
        )

    return create_async_engine(
        url,
        echo=echo,
        pool_size=20,
        max_overflow=0,
        pool_pre_ping=True,
        pool_timeout=timeout,
        connect_args={"connect_timeout": max(1, int(timeout))}
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False
    )
