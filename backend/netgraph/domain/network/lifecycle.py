"""Request / respond / withdraw state machine for a single connection edge."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Mapping, Optional

from netgraph.domain.network import audit, policy
from netgraph.domain.network.exceptions import (
	AuthorizationError,
	ConflictError,
	NotFoundError,
	ValidationError,
)
from netgraph.domain.network.models import (
	NOTES_MAX_LENGTH,
	RELATIONSHIP_TAG_MAX_LENGTH,
	Connection,
	ConnectionStatus,
	Decision,
	pair_key,
)
from netgraph.domain.network.policy import RoleMatrix
from netgraph.domain.network.repository import ConnectionGraphRepository
from netgraph.domain.network.schemas import ConnectionTransition
from netgraph.domain.network.suggestions import NoopSuggestionInvalidator, SuggestionInvalidator

logger = logging.getLogger(__name__)

_ANNOTATION_LIMITS = {
	"relationship_tag": RELATIONSHIP_TAG_MAX_LENGTH,
	"notes": NOTES_MAX_LENGTH,
}


def _require_id(value: Optional[str], reason: str) -> str:
	text = str(value).strip() if value is not None else ""
	if not text:
		raise ValidationError(reason)
	return text


def _optional_text(name: str, value: Optional[str]) -> Optional[str]:
	if value is None:
		return None
	text = str(value).strip()
	if len(text) > _ANNOTATION_LIMITS[name]:
		raise ValidationError("invalid_annotation", f"{name} must be at most {_ANNOTATION_LIMITS[name]} characters.")
	return text or None


def _transition(edge: Connection, status: Optional[str] = None, updated_at: Optional[datetime] = None) -> ConnectionTransition:
	return ConnectionTransition(
		id=edge.id,
		status=status or edge.status.value,
		updated_at=updated_at or edge.updated_at,
	)


class ConnectionLifecycleManager:
	"""Applies lifecycle transitions atomically and signals downstream caches."""

	def __init__(
		self,
		repository: ConnectionGraphRepository,
		*,
		invalidator: SuggestionInvalidator | None = None,
		matrix: RoleMatrix | None = None,
	) -> None:
		self._repo = repository
		self._invalidator = invalidator or NoopSuggestionInvalidator()
		self._matrix = matrix

	async def request(
		self,
		requester_id: Optional[str],
		target_id: Optional[str],
		*,
		note: Optional[str] = None,
		relationship_tag: Optional[str] = None,
	) -> Connection:
		requester = _require_id(requester_id, "missing_user_id")
		target = _require_id(target_id, "missing_user_id")
		if requester == target:
			raise ValidationError("self_connection", "You cannot connect with yourself.")
		notes = _optional_text("notes", note)
		tag = _optional_text("relationship_tag", relationship_tag)

		users = await self._repo.get_users_batch([requester, target])
		if requester not in users or target not in users:
			raise NotFoundError("user_missing", "One or both members could not be found.")
		requester_role = users[requester].role
		target_role = users[target].role
		if not policy.is_allowed(requester_role, target_role, self._matrix):
			audit.inc_request("role_blocked")
			raise AuthorizationError(
				"role_not_permitted",
				f"Your role ({requester_role}) cannot connect with members whose role is {target_role}.",
			)

		async with self._repo.transaction(lock_key=pair_key(requester, target)) as tx:
			existing = await tx.find_open_edge_between(requester, target)
			if existing is not None:
				reason = "already_connected" if existing.status == ConnectionStatus.ACCEPTED else "already_pending"
				audit.inc_request(reason)
				raise ConflictError(reason, "A connection between these members already exists.")
			edge = await tx.create_edge(
				requester,
				target,
				status=ConnectionStatus.PENDING,
				relationship_tag=tag,
				notes=notes,
			)

		audit.inc_request("sent")
		logger.info("connection requested", extra={"connection_id": edge.id, "requester_id": requester, "addressee_id": target})
		await self._after_change("requested", edge)
		return edge

	async def respond(self, connection_id: Optional[str], actor_id: Optional[str], decision: str) -> ConnectionTransition:
		edge_id = _require_id(connection_id, "missing_edge_id")
		actor = _require_id(actor_id, "missing_user_id")
		try:
			choice = Decision(str(decision).strip().lower())
		except ValueError:
			raise ValidationError("invalid_decision", "Decision must be accept, reject or withdraw.") from None
		if choice is Decision.WITHDRAW:
			return await self.withdraw(edge_id, actor)

		async with self._repo.transaction() as tx:
			edge = await tx.get_edge(edge_id, for_update=True)
			if edge is None:
				raise NotFoundError("connection_missing", "Connection not found.")
			if edge.addressee_id != actor:
				raise AuthorizationError("not_addressee", "Only the invited member can respond to this request.")
			if choice is Decision.ACCEPT and edge.status == ConnectionStatus.ACCEPTED:
				return _transition(edge)
			if edge.status != ConnectionStatus.PENDING:
				raise ConflictError("not_pending", "This request has already been answered.")
			if choice is Decision.ACCEPT:
				updated = await tx.update_edge_status(
					edge.id, ConnectionStatus.ACCEPTED, connected_at=datetime.now(timezone.utc)
				)
			else:
				updated = await tx.update_edge_status(edge.id, ConnectionStatus.REJECTED)

		audit.inc_response(choice.value)
		logger.info("connection %s", updated.status.value, extra={"connection_id": updated.id, "actor_id": actor})
		await self._after_change(updated.status.value, updated)
		return _transition(updated)

	async def withdraw(self, connection_id: Optional[str], actor_id: Optional[str]) -> ConnectionTransition:
		edge_id = _require_id(connection_id, "missing_edge_id")
		actor = _require_id(actor_id, "missing_user_id")
		async with self._repo.transaction() as tx:
			edge = await tx.get_edge(edge_id, for_update=True)
			if edge is None:
				raise NotFoundError("connection_missing", "Connection not found.")
			if edge.requester_id != actor:
				raise AuthorizationError("not_requester", "Only the member who sent this request can withdraw it.")
			if edge.status != ConnectionStatus.PENDING:
				raise ConflictError("not_pending", "Only pending requests can be withdrawn.")
			await tx.delete_edge(edge.id)

		withdrawn_at = datetime.now(timezone.utc)
		audit.inc_withdrawal()
		logger.info("connection withdrawn", extra={"connection_id": edge.id, "actor_id": actor})
		await self._after_change("withdrawn", edge)
		return _transition(edge, status="withdrawn", updated_at=withdrawn_at)

	async def annotate(
		self,
		connection_id: Optional[str],
		actor_id: Optional[str],
		changes: Mapping[str, object],
	) -> Connection:
		edge_id = _require_id(connection_id, "missing_edge_id")
		actor = _require_id(actor_id, "missing_user_id")
		cleaned: dict[str, object] = {}
		for name in ("relationship_tag", "notes"):
			if name in changes:
				value = changes[name]
				cleaned[name] = _optional_text(name, None if value is None else str(value))
		if "last_interacted_at" in changes:
			value = changes["last_interacted_at"]
			if value is not None and not isinstance(value, datetime):
				raise ValidationError("invalid_annotation", "last_interacted_at must be a timestamp.")
			cleaned["last_interacted_at"] = value
		if not cleaned:
			raise ValidationError("invalid_annotation", "Nothing to update.")

		async with self._repo.transaction() as tx:
			edge = await tx.get_edge(edge_id, for_update=True)
			if edge is None:
				raise NotFoundError("connection_missing", "Connection not found.")
			if not edge.involves(actor):
				raise AuthorizationError("not_participant", "Only members of this connection can annotate it.")
			updated = await tx.update_edge_annotations(edge.id, cleaned)
		return updated

	async def _after_change(self, event: str, edge: Connection) -> None:
		# Secondary effects run after commit and never fail the transition.
		try:
			await self._invalidator.invalidate(edge.requester_id, edge.addressee_id)
		except Exception:
			audit.inc_invalidation_failure()
			logger.warning(
				"suggestion invalidation failed",
				exc_info=True,
				extra={"connection_id": edge.id},
			)
		try:
			await audit.log_connection_event(
				event,
				{
					"connection_id": edge.id,
					"requester": edge.requester_id,
					"addressee": edge.addressee_id,
					"status": "withdrawn" if event == "withdrawn" else edge.status.value,
				},
			)
		except Exception:
			logger.warning("connection audit write failed", exc_info=True, extra={"connection_id": edge.id})
