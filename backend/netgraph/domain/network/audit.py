"""Audit helpers for connection lifecycle events."""

from __future__ import annotations

from typing import Dict

from netgraph.infra.redis import redis_client
from netgraph.obs import metrics as obs_metrics

CONNECTION_EVENTS_STREAM = "x:connections.events"


async def log_connection_event(event: str, fields: Dict[str, str]) -> None:
	payload = {"event": event, **{key: value for key, value in fields.items() if value is not None}}
	await redis_client.xadd(CONNECTION_EVENTS_STREAM, payload)


def inc_request(result: str) -> None:
	obs_metrics.inc_connection_request(result)


def inc_response(decision: str) -> None:
	obs_metrics.inc_connection_response(decision)


def inc_withdrawal() -> None:
	obs_metrics.inc_connection_withdrawal()


def inc_invalidation_failure() -> None:
	obs_metrics.inc_invalidation_failure()
