"""Async SQLAlchemy engine, Redis client and request-scoped dependencies."""

from collections.abc import AsyncGenerator

import redis.asyncio as aioredis
import structlog
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.chain.reader import DishChainReader
from src.config import settings
from src.db.store import SqlDishStore
from src.domains.referrals.attribution import AttributionStore, RedisAttributionStore
from src.domains.registry.store import DishStore

logger = structlog.get_logger()

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
)

async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

_redis_client: aioredis.Redis | None = None
_chain_reader: DishChainReader | None = None


def get_redis() -> aioredis.Redis:
    global _redis_client
    if _redis_client is None:
        _redis_client = aioredis.from_url(settings.redis_url, decode_responses=True)
    return _redis_client


async def get_store() -> AsyncGenerator[DishStore, None]:
    """One ``SqlDishStore`` per request; each store write commits on its own."""
    async with async_session_factory() as session:
        yield SqlDishStore(session)


async def get_attribution_store() -> AttributionStore:
    return RedisAttributionStore(get_redis(), ttl_seconds=settings.referral_ttl_seconds)


async def get_chain_reader() -> DishChainReader:
    global _chain_reader
    if _chain_reader is None:
        _chain_reader = DishChainReader(settings.chain_rpc_url, settings.dishes_contract_address)
    return _chain_reader


async def init_db() -> None:
    """Create all tables. Use Alembic migrations in production."""
    from src.db.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("database_initialized")


async def check_db() -> bool:
    """Check database connectivity."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except (SQLAlchemyError, OSError):
        logger.warning("database_check_failed")
        return False


async def check_redis() -> bool:
    """Check Redis connectivity."""
    try:
        await get_redis().ping()
        return True
    except (RedisError, OSError):
        logger.warning("redis_check_failed")
        return False


async def close_connections() -> None:
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
    await engine.dispose()
