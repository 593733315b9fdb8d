"""Outbound invalidation of the connection-suggestion cache."""

from __future__ import annotations

from typing import Protocol

from netgraph.infra.redis import RedisProxy, redis_client
from netgraph.settings import settings


class SuggestionInvalidator(Protocol):
	async def invalidate(self, user_a: str, user_b: str) -> None:
		...


class NoopSuggestionInvalidator(SuggestionInvalidator):
	async def invalidate(self, user_a: str, user_b: str) -> None:
		return None


class RedisSuggestionInvalidator(SuggestionInvalidator):
	"""Drops cached suggestion lists for both users of a changed edge."""

	def __init__(self, client: RedisProxy | None = None, *, prefix: str | None = None) -> None:
		self._client = client or redis_client
		self._prefix = prefix or settings.network_suggestions_cache_prefix

	def key_for(self, user_id: str) -> str:
		return f"{self._prefix}:{user_id}"

	async def invalidate(self, user_a: str, user_b: str) -> None:
		await self._client.delete(self.key_for(str(user_a)), self.key_for(str(user_b)))
