"""Bounded breadth-first walk over accepted connections.

The walk expands one degree at a time. Each level issues a single batched
edge read for the whole frontier, so a full traversal costs at most
``MAX_DEGREE`` reads regardless of network size.

State (``visited``, ``frontier``, the buckets) lives inside one call and is
never shared between requests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Dict, Iterable, Optional, Sequence

from netgraph.domain.network.models import MAX_DEGREE, Connection, DegreeEntry

logger = logging.getLogger(__name__)

EdgeFetcher = Callable[[Iterable[str]], Awaitable[Sequence[Connection]]]


@dataclass(slots=True)
class TraversalResult:
	origin_id: str
	buckets: Dict[int, Dict[str, DegreeEntry]] = field(default_factory=dict)

	def bucket(self, degree: int) -> Dict[str, DegreeEntry]:
		return self.buckets.get(degree, {})

	def node_ids(self) -> set[str]:
		"""Every node id referenced by the result, connectors and paths included."""
		ids: set[str] = {self.origin_id}
		for bucket in self.buckets.values():
			for node_id, entry in bucket.items():
				ids.add(node_id)
				ids.update(entry.connectors)
				ids.update(entry.path)
		return ids

	def degree_of(self, node_id: str) -> Optional[int]:
		for degree, bucket in self.buckets.items():
			if node_id in bucket:
				return degree
		return None


def _earliest(current: Optional[datetime], candidate: Optional[datetime]) -> Optional[datetime]:
	if candidate is None:
		return current
	if current is None or candidate < current:
		return candidate
	return current


def _latest(current: Optional[datetime], candidate: Optional[datetime]) -> Optional[datetime]:
	if candidate is None:
		return current
	if current is None or candidate > current:
		return candidate
	return current


def _merge_edge(entry: DegreeEntry, source: str, source_path: list[str], target: str, edge: Connection) -> None:
	entry.connectors.add(source)
	if not entry.path:
		entry.path = [*source_path, target]
	entry.connected_at = _earliest(entry.connected_at, edge.connected_at)
	entry.last_interaction_at = _latest(entry.last_interaction_at, edge.last_interacted_at)
	if entry.relationship_tag is None and edge.relationship_tag:
		entry.relationship_tag = edge.relationship_tag
	if entry.notes is None and edge.notes:
		entry.notes = edge.notes


async def traverse(origin_id: str, fetch_edges: EdgeFetcher, *, max_degree: int = MAX_DEGREE) -> TraversalResult:
	"""Compute the 1st..max_degree buckets reachable from `origin_id`.

	A node lands in the bucket of the first degree at which it is reached and
	is never revisited. Within a degree the connector set collects every
	frontier node with an edge to it, while path and annotations keep the
	first value seen.
	"""
	origin = str(origin_id)
	max_degree = max(0, min(int(max_degree), MAX_DEGREE))
	result = TraversalResult(origin_id=origin)
	visited: set[str] = {origin}
	frontier: Dict[str, list[str]] = {origin: [origin]}

	for degree in range(1, max_degree + 1):
		if not frontier:
			break
		edges = await fetch_edges(list(frontier))
		bucket: Dict[str, DegreeEntry] = {}
		for edge in edges:
			for source, target in (edge.endpoints, edge.endpoints[::-1]):
				if source not in frontier or target in visited:
					continue
				entry = bucket.get(target)
				if entry is None:
					entry = bucket[target] = DegreeEntry()
				_merge_edge(entry, source, frontier[source], target, edge)

		next_frontier: Dict[str, list[str]] = {}
		for node_id, entry in bucket.items():
			if node_id in visited:
				continue
			visited.add(node_id)
			next_frontier[node_id] = entry.path
		result.buckets[degree] = bucket
		frontier = next_frontier
		logger.debug(
			"network traversal level",
			extra={"origin_id": origin, "degree": degree, "edges": len(edges), "reached": len(bucket)},
		)

	for degree in range(1, MAX_DEGREE + 1):
		result.buckets.setdefault(degree, {})
	return result
