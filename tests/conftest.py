"""
Shared pytest fixtures and configuration for all tests.
"""

import os
from collections.abc import AsyncGenerator, Generator
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio

from alembic import command
from alembic.config import Config


@pytest.fixture(scope="function")
def test_database(tmp_path: Path) -> Generator[str, None, None]:
    """Return the URL of a throwaway SQLite database file."""
    yield f"sqlite:///{tmp_path / 'socialgraph.db'}"


@pytest.fixture(scope="function")
def alembic_migrate(test_database: str) -> Generator[None, None, None]:
    """Run Alembic upgrade to head against the test database."""
    os.environ["SOCIALGRAPH_DATABASE_URL"] = test_database
    cfg = Config(str(Path(__file__).parent.parent / "alembic.ini"))
    cfg.set_main_option("script_location", str(Path(__file__).parent.parent / "alembic"))
    command.upgrade(cfg, "head")
    yield
    command.downgrade(cfg, "base")


@pytest_asyncio.fixture(scope="function")
async def reset_shared_db_connections(test_database: str) -> AsyncGenerator[None, None]:
    """Point the shared connection pool at the test database and create the schema."""
    from socialgraph.database.connection import (
        dispose_database,
        get_async_engine,
        get_async_session,
        init_database,
    )
    from socialgraph.database.seed_data import ensure_member_types
    from socialgraph.dbmodels import Base

    await dispose_database()
    os.environ["SOCIALGRAPH_DATABASE_URL"] = test_database
    init_database(test_database, force_reinit=True)

    async with get_async_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with get_async_session() as session:
        await ensure_member_types(session)

    yield

    # Clean up after test
    await dispose_database()


@pytest.fixture(autouse=True)
def reset_environment() -> Generator[None, None, None]:
    """Reset environment variables for each test."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)


# Test markers
def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line(  # type: ignore[reportUnknownMemberType]
        "markers", "requires_db: mark test as requiring database connection"
    )
    config.addinivalue_line("markers", "slow: mark test as slow running")  # type: ignore[reportUnknownMemberType]
    config.addinivalue_line("markers", "integration: mark test as integration test")  # type: ignore[reportUnknownMemberType]
    config.addinivalue_line("markers", "unit: mark test as unit test")  # type: ignore[reportUnknownMemberType]


@pytest_asyncio.fixture(scope="function")
async def social_graph(reset_shared_db_connections: None) -> dict[str, Any]:
    """Create three users with profiles, posts and subscriptions.

    alice (basic) wrote two posts and follows bob; bob (business) wrote one
    post and follows alice; carol has no profile or posts and follows bob.
    """
    _ = reset_shared_db_connections

    from socialgraph import repository
    from socialgraph.database.connection import get_async_session

    async with get_async_session() as session:
        alice = await repository.create_user(session, name="alice", balance=100.0)
        bob = await repository.create_user(session, name="bob", balance=50.5)
        carol = await repository.create_user(session, name="carol", balance=0.0)

        alice_profile = await repository.create_profile(
            session, user_id=alice.id, member_type_id="basic", is_male=False, year_of_birth=1990
        )
        bob_profile = await repository.create_profile(
            session, user_id=bob.id, member_type_id="business", is_male=True, year_of_birth=1985
        )

        alice_post_1 = await repository.create_post(
            session, author_id=alice.id, title="Hello", content="First post"
        )
        alice_post_2 = await repository.create_post(
            session, author_id=alice.id, title="Again", content="Second post"
        )
        bob_post = await repository.create_post(
            session, author_id=bob.id, title="Bob here", content="Only post"
        )

        await repository.subscribe(session, subscriber_id=alice.id, author_id=bob.id)
        await repository.subscribe(session, subscriber_id=bob.id, author_id=alice.id)
        await repository.subscribe(session, subscriber_id=carol.id, author_id=bob.id)

    return {
        "alice": alice.id,
        "bob": bob.id,
        "carol": carol.id,
        "alice_profile": alice_profile.id,
        "bob_profile": bob_profile.id,
        "alice_posts": {alice_post_1.id, alice_post_2.id},
        "bob_post": bob_post.id,
    }
