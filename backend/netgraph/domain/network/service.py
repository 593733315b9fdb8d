"""Service layer assembling a member's multi-degree connection network."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional

from netgraph.domain.network import policy
from netgraph.domain.network.analytics import summarise_invitations
from netgraph.domain.network.exceptions import AuthorizationError, NotFoundError, ValidationError
from netgraph.domain.network.hydrator import NodeSummaryHydrator, summarise_user
from netgraph.domain.network.models import DegreeEntry, Role, UserRecord
from netgraph.domain.network.pending import PendingInvitationResolver, counterpart_ids
from netgraph.domain.network.policy import RoleMatrix
from netgraph.domain.network.repository import ConnectionGraphRepository
from netgraph.domain.network.schemas import (
	NetworkCounts,
	NetworkNode,
	NetworkPayload,
	NodeActions,
	NodeRef,
	NodeSummary,
	PolicySnapshot,
)
from netgraph.domain.network.traversal import TraversalResult, traverse
from netgraph.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

DEFAULT_SUGGESTION_LIMIT = 8

_DEGREE_LABELS = {1: "1st degree", 2: "2nd degree", 3: "3rd degree"}


def degree_label(degree: int) -> str:
	return _DEGREE_LABELS.get(degree, f"{degree}°")


def _placeholder(node_id: str) -> NodeSummary:
	return NodeSummary(id=node_id)


def _ref(node_id: str, summaries: Mapping[str, NodeSummary]) -> NodeRef:
	summary = summaries.get(node_id)
	if summary is None:
		return NodeRef(id=node_id)
	return NodeRef(id=node_id, name=summary.name, role=summary.role)


def _sort_key(node: NetworkNode) -> tuple[str, str]:
	return ((node.name or "").casefold(), node.id)


class NetworkQueryService:
	"""Builds the connection network payload for a subject as seen by a viewer."""

	def __init__(
		self,
		repository: ConnectionGraphRepository,
		*,
		matrix: RoleMatrix | None = None,
		suggestion_limit: int = DEFAULT_SUGGESTION_LIMIT,
	) -> None:
		self._repo = repository
		self._matrix = matrix
		self._suggestion_limit = suggestion_limit
		self._hydrator = NodeSummaryHydrator(repository)
		self._pending = PendingInvitationResolver(repository)

	async def build_connection_network(
		self,
		subject_id: Optional[str],
		viewer_id: Optional[str] = None,
		*,
		include_pending: bool = False,
	) -> NetworkPayload:
		started = time.perf_counter()
		subject_key = str(subject_id).strip() if subject_id is not None else ""
		if not subject_key:
			raise ValidationError("missing_user_id", "A subject user id is required.")
		viewer_key = str(viewer_id).strip() if viewer_id else subject_key

		subject, viewer = await self._load_participants(subject_key, viewer_key)
		if viewer.id != subject.id and viewer.role != Role.ADMIN.value:
			raise AuthorizationError("view_forbidden", "You can only view your own network.")

		traversal = await traverse(subject.id, self._repo.get_accepted_edges_touching)
		pending_edges = await self._repo.get_pending_edges_for_user(subject.id) if include_pending else []
		responded = await self._repo.get_responded_edges_for_addressee(subject.id)

		node_ids = traversal.node_ids() | counterpart_ids(subject.id, pending_edges)
		node_ids.discard(subject.id)
		node_ids.discard(viewer.id)
		summaries: Dict[str, NodeSummary] = await self._hydrator.hydrate(node_ids)
		summaries[subject.id] = summarise_user(subject)
		summaries[viewer.id] = summarise_user(viewer)

		buckets = {
			degree: self._assemble_bucket(degree, traversal, subject, summaries)
			for degree in (1, 2, 3)
		}
		pending = None
		if include_pending:
			pending = await self._pending.resolve(subject.id, pending_edges, traversal.bucket(1).keys(), summaries)

		payload = NetworkPayload(
			subject=summaries[subject.id],
			viewer=summaries[viewer.id],
			policy=PolicySnapshot(**policy.snapshot(subject.role, self._matrix)),
			summary=NetworkCounts(
				first_degree=len(buckets[1]),
				second_degree=len(buckets[2]),
				third_degree=len(buckets[3]),
				total=sum(len(nodes) for nodes in buckets.values()),
			),
			first_degree=buckets[1],
			second_degree=buckets[2],
			third_degree=buckets[3],
			pending=pending,
			suggested_connections=self._suggestions(buckets[2]),
			invitation_analytics=summarise_invitations(responded),
			generated_at=datetime.now(timezone.utc),
		)
		elapsed = time.perf_counter() - started
		obs_metrics.observe_network_build(include_pending, elapsed)
		logger.info(
			"connection network built",
			extra={
				"subject_id": subject.id,
				"viewer_id": viewer.id,
				"total": payload.summary.total,
				"elapsed_ms": round(elapsed * 1000, 3),
			},
		)
		return payload

	async def _load_participants(self, subject_id: str, viewer_id: str) -> tuple[UserRecord, UserRecord]:
		if viewer_id == subject_id:
			subject = await self._repo.get_user(subject_id)
			if subject is None:
				raise NotFoundError("user_missing", "User not found.")
			return subject, subject
		users = await self._repo.get_users_batch([subject_id, viewer_id])
		if subject_id not in users:
			raise NotFoundError("user_missing", "User not found.")
		if viewer_id not in users:
			raise NotFoundError("viewer_missing", "Viewer not found.")
		return users[subject_id], users[viewer_id]

	def _assemble_bucket(
		self,
		degree: int,
		traversal: TraversalResult,
		subject: UserRecord,
		summaries: Mapping[str, NodeSummary],
	) -> List[NetworkNode]:
		nodes = [
			self._node(degree, node_id, entry, subject, summaries)
			for node_id, entry in traversal.bucket(degree).items()
		]
		return sorted(nodes, key=_sort_key)

	def _node(
		self,
		degree: int,
		node_id: str,
		entry: DegreeEntry,
		subject: UserRecord,
		summaries: Mapping[str, NodeSummary],
	) -> NetworkNode:
		summary = summaries.get(node_id) or _placeholder(node_id)
		connectors = sorted(entry.connectors - {subject.id})
		return NetworkNode(
			**summary.model_dump(),
			degree=degree,
			degree_label=degree_label(degree),
			mutual_connections=len(connectors),
			connectors=[_ref(connector, summaries) for connector in connectors],
			path=[_ref(step, summaries) for step in entry.path],
			connected_at=entry.connected_at,
			last_interaction_at=entry.last_interaction_at,
			relationship_tag=entry.relationship_tag,
			notes=entry.notes,
			actions=self._actions(degree, subject.role, summary.role),
		)

	def _actions(self, degree: int, actor_role: str, target_role: Optional[str]) -> NodeActions:
		allowed = policy.is_allowed(actor_role, target_role, self._matrix)
		reason = None
		if not allowed:
			reason = f"{(actor_role or 'your').capitalize()} accounts cannot connect with {target_role or 'this'} accounts."
		return NodeActions(
			can_message=degree == 1,
			can_request_connection=degree > 1 and allowed,
			requires_introduction=degree > 1,
			reason=reason,
		)

	def _suggestions(self, second_degree: List[NetworkNode]) -> List[NetworkNode]:
		ranked = sorted(second_degree, key=lambda node: node.mutual_connections, reverse=True)
		return ranked[: self._suggestion_limit]
