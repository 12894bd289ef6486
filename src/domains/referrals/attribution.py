"""Referral code attribution across visits.

A referral code arrives as a ``ref`` URL parameter or was stored on an
earlier visit. The URL value always wins and is persisted; the stored value
is only a fallback.
"""

from typing import Protocol

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from src.shared.errors import UpstreamUnavailable, ValidationError

from .config import ReferralConfig, default_config
from .models import AttributionResponse

logger = structlog.get_logger()


class AttributionStore(Protocol):
    async def get(self, client_id: str) -> int | None: ...

    async def set(self, client_id: str, referrer_fid: int) -> None: ...


class MemoryAttributionStore:
    """Process-local store, for tests and single-process development runs."""

    def __init__(self) -> None:
        self._values: dict[str, int] = {}

    async def get(self, client_id: str) -> int | None:
        return self._values.get(client_id)

    async def set(self, client_id: str, referrer_fid: int) -> None:
        self._values[client_id] = referrer_fid


class RedisAttributionStore:
    """Durable attribution keyed per client in Redis."""

    def __init__(
        self,
        client: Redis,
        ttl_seconds: int = 0,
        config: ReferralConfig | None = None,
    ) -> None:
        self._client = client
        self._ttl = ttl_seconds
        self._prefix = (config or default_config).attribution_key_prefix

    def _key(self, client_id: str) -> str:
        return f"{self._prefix}{client_id}"

    async def get(self, client_id: str) -> int | None:
        try:
            raw = await self._client.get(self._key(client_id))
        except RedisError as exc:
            raise UpstreamUnavailable("Attribution store unavailable") from exc
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            logger.warning("attribution_value_corrupt", client_id=client_id)
            return None

    async def set(self, client_id: str, referrer_fid: int) -> None:
        try:
            await self._client.set(
                self._key(client_id), str(referrer_fid), ex=self._ttl or None
            )
        except RedisError as exc:
            raise UpstreamUnavailable("Attribution store unavailable") from exc


def parse_referral_code(code: str | None) -> int | None:
    """Referrer fid carried by a referral code, or None if absent or malformed."""
    if code is None:
        return None
    try:
        fid = int(code.strip())
    except ValueError:
        return None
    return fid if fid > 0 else None


class ReferralAttribution:
    """Resolves the referrer for a client: URL code, then stored value, then none."""

    def __init__(self, store: AttributionStore) -> None:
        self._store = store

    async def resolve(self, client_id: str, url_code: str | None = None) -> AttributionResponse:
        if not client_id:
            raise ValidationError("Client ID is required")

        url_fid = parse_referral_code(url_code)
        if url_fid is not None:
            await self._store.set(client_id, url_fid)
            logger.debug("attribution_from_url", client_id=client_id, referrer_fid=url_fid)
            return AttributionResponse(client_id=client_id, referrer_fid=url_fid, source="url")

        if url_code:
            logger.debug("attribution_url_code_ignored", client_id=client_id, code=url_code)

        stored = await self._store.get(client_id)
        if stored is not None:
            return AttributionResponse(client_id=client_id, referrer_fid=stored, source="stored")

        return AttributionResponse(client_id=client_id, referrer_fid=None, source="none")
