"""FastAPI dependency providers for the connection graph services."""

from __future__ import annotations

from fastapi import Depends, Request

from netgraph.domain.network.lifecycle import ConnectionLifecycleManager
from netgraph.domain.network.policy import build_matrix
from netgraph.domain.network.repository import ConnectionGraphRepository
from netgraph.domain.network.service import NetworkQueryService
from netgraph.domain.network.suggestions import RedisSuggestionInvalidator
from netgraph.settings import settings


def get_repository(request: Request) -> ConnectionGraphRepository:
	repository = getattr(request.app.state, "repository", None)
	if repository is None:
		raise RuntimeError("connection graph repository is not configured")
	return repository


def get_network_service(
	repository: ConnectionGraphRepository = Depends(get_repository),
) -> NetworkQueryService:
	return NetworkQueryService(
		repository,
		matrix=build_matrix(settings.connection_policy_overrides),
		suggestion_limit=settings.network_suggestion_limit,
	)


def get_lifecycle_manager(
	repository: ConnectionGraphRepository = Depends(get_repository),
) -> ConnectionLifecycleManager:
	return ConnectionLifecycleManager(
		repository,
		invalidator=RedisSuggestionInvalidator(),
		matrix=build_matrix(settings.connection_policy_overrides),
	)
