"""Pending invitations with mutual-connector context."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, Iterable, Mapping, Sequence

from netgraph.domain.network.models import Connection
from netgraph.domain.network.repository import ConnectionGraphRepository
from netgraph.domain.network.schemas import NodeSummary, PendingInvitation, PendingInvitations

logger = logging.getLogger(__name__)


def counterpart_ids(origin_id: str, edges: Iterable[Connection]) -> set[str]:
	return {edge.counterpart(origin_id) for edge in edges}


async def accepted_neighbours(
	repository: ConnectionGraphRepository, user_ids: Iterable[str]
) -> Dict[str, set[str]]:
	"""Accepted-connection sets for several users from one batched read."""
	wanted = {str(uid) for uid in user_ids}
	neighbours: Dict[str, set[str]] = defaultdict(set)
	if not wanted:
		return neighbours
	for edge in await repository.get_accepted_edges_touching(wanted):
		if edge.requester_id in wanted:
			neighbours[edge.requester_id].add(edge.addressee_id)
		if edge.addressee_id in wanted:
			neighbours[edge.addressee_id].add(edge.requester_id)
	return neighbours


class PendingInvitationResolver:
	"""Classifies pending edges for an origin and counts shared connections."""

	def __init__(self, repository: ConnectionGraphRepository) -> None:
		self._repo = repository

	async def resolve(
		self,
		origin_id: str,
		pending_edges: Sequence[Connection],
		first_degree_ids: Iterable[str],
		summaries: Mapping[str, NodeSummary],
	) -> PendingInvitations:
		origin = str(origin_id)
		first_degree = set(first_degree_ids)
		neighbours = await accepted_neighbours(self._repo, counterpart_ids(origin, pending_edges))
		result = PendingInvitations()
		for edge in pending_edges:
			if not edge.involves(origin):
				continue
			counterpart_id = edge.counterpart(origin)
			counterpart = summaries.get(counterpart_id)
			if counterpart is None:
				logger.debug(
					"dropping pending invitation with unresolved counterpart",
					extra={"connection_id": edge.id, "counterpart_id": counterpart_id},
				)
				continue
			direction = "incoming" if edge.addressee_id == origin else "outgoing"
			inviter = summaries.get(edge.requester_id)
			invitation = PendingInvitation(
				**counterpart.model_dump(),
				connection_id=edge.id,
				user_id=counterpart_id,
				direction=direction,
				invited_by=inviter.name if inviter else None,
				note=edge.notes,
				relationship_tag=edge.relationship_tag,
				sent_at=edge.created_at,
				status=edge.status.value,
				mutual_connections=len(neighbours.get(counterpart_id, set()) & first_degree),
			)
			getattr(result, direction).append(invitation)
		return result
