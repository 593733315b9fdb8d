"""REST API surface for connection networks and connection requests."""

from __future__ import annotations

from dataclasses import asdict
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from netgraph.api.deps import get_lifecycle_manager, get_network_service
from netgraph.domain.network.exceptions import NetworkError
from netgraph.domain.network.lifecycle import ConnectionLifecycleManager
from netgraph.domain.network.models import Connection
from netgraph.domain.network.schemas import (
	ConnectionAnnotateBody,
	ConnectionOut,
	ConnectionRequestBody,
	ConnectionRespondBody,
	ConnectionTransition,
	NetworkPayload,
)
from netgraph.domain.network.service import NetworkQueryService
from netgraph.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter()


def _map_error(exc: NetworkError) -> HTTPException:
	return HTTPException(exc.status_code, detail=exc.reason)


def _edge_out(edge: Connection) -> ConnectionOut:
	payload = asdict(edge)
	payload["status"] = edge.status.value
	return ConnectionOut(**payload)


@router.get("/network/me", response_model=NetworkPayload)
async def my_network(
	include_pending: bool = Query(default=False),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: NetworkQueryService = Depends(get_network_service),
) -> NetworkPayload:
	try:
		return await service.build_connection_network(auth_user.id, auth_user.id, include_pending=include_pending)
	except NetworkError as exc:
		raise _map_error(exc) from None


@router.get("/network/{subject_id}", response_model=NetworkPayload)
async def subject_network(
	subject_id: UUID,
	include_pending: bool = Query(default=False),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: NetworkQueryService = Depends(get_network_service),
) -> NetworkPayload:
	try:
		return await service.build_connection_network(str(subject_id), auth_user.id, include_pending=include_pending)
	except NetworkError as exc:
		raise _map_error(exc) from None


@router.post("/connections", response_model=ConnectionOut, status_code=status.HTTP_201_CREATED)
async def request_connection(
	payload: ConnectionRequestBody,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	manager: ConnectionLifecycleManager = Depends(get_lifecycle_manager),
) -> ConnectionOut:
	try:
		edge = await manager.request(
			auth_user.id,
			str(payload.target_id),
			note=payload.note,
			relationship_tag=payload.relationship_tag,
		)
	except NetworkError as exc:
		raise _map_error(exc) from None
	return _edge_out(edge)


@router.post("/connections/{connection_id}/respond", response_model=ConnectionTransition)
async def respond_to_connection(
	connection_id: UUID,
	payload: ConnectionRespondBody,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	manager: ConnectionLifecycleManager = Depends(get_lifecycle_manager),
) -> ConnectionTransition:
	try:
		return await manager.respond(str(connection_id), auth_user.id, payload.decision)
	except NetworkError as exc:
		raise _map_error(exc) from None


@router.post("/connections/{connection_id}/withdraw", response_model=ConnectionTransition)
async def withdraw_connection(
	connection_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	manager: ConnectionLifecycleManager = Depends(get_lifecycle_manager),
) -> ConnectionTransition:
	try:
		return await manager.withdraw(str(connection_id), auth_user.id)
	except NetworkError as exc:
		raise _map_error(exc) from None


@router.patch("/connections/{connection_id}", response_model=ConnectionOut)
async def annotate_connection(
	connection_id: UUID,
	payload: ConnectionAnnotateBody,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	manager: ConnectionLifecycleManager = Depends(get_lifecycle_manager),
) -> ConnectionOut:
	try:
		edge = await manager.annotate(str(connection_id), auth_user.id, payload.model_dump(exclude_unset=True))
	except NetworkError as exc:
		raise _map_error(exc) from None
	return _edge_out(edge)
