"""Storage contracts and in-memory fallback for the connection graph."""

from __future__ import annotations

import asyncio
import copy
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import AsyncContextManager, AsyncIterator, Iterable, Mapping, MutableMapping, Optional, Protocol, Sequence
from uuid import uuid4

from netgraph.domain.network.exceptions import ConflictError
from netgraph.domain.network.models import (
	OPEN_STATUSES,
	RESPONDED_STATUSES,
	Connection,
	ConnectionStatus,
	UserRecord,
	pair_key,
)

_UNSET = object()


class ConnectionGraphRepository(Protocol):
	"""Persistence layer consumed by the connection graph services."""

	async def get_user(self, user_id: str) -> UserRecord | None:
		"""Return a user with profile, or None when missing."""

	async def get_users_batch(self, user_ids: Iterable[str]) -> dict[str, UserRecord]:
		"""Load several users in one read. Missing ids are absent from the result."""

	async def get_accepted_edges_touching(self, user_ids: Iterable[str]) -> Sequence[Connection]:
		"""Accepted edges where either endpoint is in `user_ids`."""

	async def get_pending_edges_for_user(self, user_id: str) -> Sequence[Connection]:
		"""Pending edges in both directions for one user."""

	async def get_responded_edges_for_addressee(self, user_id: str) -> Sequence[Connection]:
		"""Accepted or rejected edges the user was asked to respond to."""

	async def get_edge(self, edge_id: str, *, for_update: bool = False) -> Connection | None:
		"""Fetch one edge; `for_update` locks it for the enclosing transaction."""

	async def find_open_edge_between(self, user_a: str, user_b: str) -> Connection | None:
		"""Return the pending/accepted edge between a pair, either direction."""

	async def create_edge(
		self,
		requester_id: str,
		addressee_id: str,
		*,
		status: ConnectionStatus = ConnectionStatus.PENDING,
		relationship_tag: str | None = None,
		notes: str | None = None,
	) -> Connection:
		"""Insert a new edge and return it."""

	async def update_edge_status(
		self,
		edge_id: str,
		status: ConnectionStatus,
		*,
		connected_at: datetime | None = None,
	) -> Connection:
		"""Change the status of an edge and return the updated row."""

	async def update_edge_annotations(self, edge_id: str, changes: Mapping[str, object]) -> Connection:
		"""Apply annotation changes (relationship_tag, notes, last_interacted_at)."""

	async def delete_edge(self, edge_id: str) -> None:
		"""Remove an edge."""

	def transaction(self, lock_key: str | None = None) -> AsyncContextManager["ConnectionGraphRepository"]:
		"""Open an atomic unit; yields a repository bound to it.

		`lock_key` serialises concurrent units that share the key even when no
		row exists yet to lock.
		"""


@dataclass
class InMemoryConnectionGraphRepository(ConnectionGraphRepository):
	"""Simple repository with in-memory state for local development and tests."""

	users: MutableMapping[str, UserRecord] = field(default_factory=dict)
	edges: MutableMapping[str, Connection] = field(default_factory=dict)
	reads: list[tuple[str, tuple[str, ...]]] = field(default_factory=list)
	_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

	def add_user(self, user: UserRecord) -> UserRecord:
		self.users[user.id] = user
		return user

	def add_edge(self, edge: Connection) -> Connection:
		self.edges[edge.id] = edge
		return edge

	def _record_read(self, name: str, ids: Iterable[str]) -> None:
		self.reads.append((name, tuple(sorted(str(i) for i in ids))))

	async def get_user(self, user_id: str) -> UserRecord | None:
		self._record_read("get_user", [user_id])
		return self.users.get(str(user_id))

	async def get_users_batch(self, user_ids: Iterable[str]) -> dict[str, UserRecord]:
		wanted = {str(uid) for uid in user_ids}
		self._record_read("get_users_batch", wanted)
		return {uid: self.users[uid] for uid in wanted if uid in self.users}

	async def get_accepted_edges_touching(self, user_ids: Iterable[str]) -> Sequence[Connection]:
		wanted = {str(uid) for uid in user_ids}
		self._record_read("get_accepted_edges_touching", wanted)
		return [
			edge
			for edge in self.edges.values()
			if edge.status == ConnectionStatus.ACCEPTED
			and (edge.requester_id in wanted or edge.addressee_id in wanted)
		]

	async def get_pending_edges_for_user(self, user_id: str) -> Sequence[Connection]:
		self._record_read("get_pending_edges_for_user", [user_id])
		rows = [
			edge
			for edge in self.edges.values()
			if edge.status == ConnectionStatus.PENDING and edge.involves(user_id)
		]
		return sorted(rows, key=lambda edge: edge.created_at, reverse=True)

	async def get_responded_edges_for_addressee(self, user_id: str) -> Sequence[Connection]:
		self._record_read("get_responded_edges_for_addressee", [user_id])
		return [
			edge
			for edge in self.edges.values()
			if edge.addressee_id == str(user_id) and edge.status in RESPONDED_STATUSES
		]

	async def get_edge(self, edge_id: str, *, for_update: bool = False) -> Connection | None:
		return self.edges.get(str(edge_id))

	async def find_open_edge_between(self, user_a: str, user_b: str) -> Connection | None:
		key = pair_key(user_a, user_b)
		for edge in self.edges.values():
			if edge.status in OPEN_STATUSES and pair_key(*edge.endpoints) == key:
				return edge
		return None

	async def create_edge(
		self,
		requester_id: str,
		addressee_id: str,
		*,
		status: ConnectionStatus = ConnectionStatus.PENDING,
		relationship_tag: str | None = None,
		notes: str | None = None,
	) -> Connection:
		if status in OPEN_STATUSES and await self.find_open_edge_between(requester_id, addressee_id):
			raise ConflictError("already_pending")
		now = datetime.now(timezone.utc)
		edge = Connection(
			id=str(uuid4()),
			requester_id=str(requester_id),
			addressee_id=str(addressee_id),
			status=status,
			created_at=now,
			updated_at=now,
			relationship_tag=relationship_tag,
			notes=notes,
		)
		self.edges[edge.id] = edge
		return edge

	async def update_edge_status(
		self,
		edge_id: str,
		status: ConnectionStatus,
		*,
		connected_at: datetime | None = None,
	) -> Connection:
		edge = self.edges[str(edge_id)]
		now = datetime.now(timezone.utc)
		edge.status = status
		edge.updated_at = now
		if status in RESPONDED_STATUSES:
			edge.responded_at = now
		if connected_at is not None and edge.connected_at is None:
			edge.connected_at = connected_at
		return edge

	async def update_edge_annotations(self, edge_id: str, changes: Mapping[str, object]) -> Connection:
		edge = self.edges[str(edge_id)]
		for name in ("relationship_tag", "notes", "last_interacted_at"):
			value = changes.get(name, _UNSET)
			if value is not _UNSET:
				setattr(edge, name, value)
		edge.updated_at = datetime.now(timezone.utc)
		return edge

	async def delete_edge(self, edge_id: str) -> None:
		self.edges.pop(str(edge_id), None)

	@asynccontextmanager
	async def transaction(self, lock_key: Optional[str] = None) -> AsyncIterator["InMemoryConnectionGraphRepository"]:
		# One lock for every unit; rollback restores the edge snapshot.
		async with self._lock:
			snapshot = copy.deepcopy(self.edges)
			try:
				yield self
			except BaseException:
				self.edges.clear()
				self.edges.update(snapshot)
				raise
