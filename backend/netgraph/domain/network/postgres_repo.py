"""PostgreSQL-backed repository for users, profiles and connection edges."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Iterable, Mapping, Optional, Sequence, Union

import asyncpg

from netgraph.domain.network.exceptions import ConflictError
from netgraph.domain.network.models import (
	Connection,
	ConnectionStatus,
	ProfileRecord,
	UserRecord,
)
from netgraph.domain.network.repository import ConnectionGraphRepository

Executor = Union[asyncpg.Pool, asyncpg.Connection]

_CONNECTION_COLUMNS = """
	id, requester_id, addressee_id, status, created_at, updated_at, responded_at,
	connected_at, last_interacted_at, relationship_tag, notes
"""

_USERS_WITH_PROFILE_SQL = """
SELECT u.id, u.first_name, u.last_name, u.email, u.role,
	p.user_id AS profile_user_id, p.headline, p.bio, p.location, p.avatar_url, p.avatar_seed,
	p.areas_of_focus, p.availability_status, p.available_hours_per_week,
	p.open_to_remote, p.availability_notes, p.preferred_engagements, p.trust_score
FROM users u
LEFT JOIN profiles p ON p.user_id = u.id
WHERE u.id = ANY($1::uuid[]) AND u.deleted_at IS NULL
"""

_ANNOTATION_COLUMNS = ("relationship_tag", "notes", "last_interacted_at")


def _row_to_user(row: Mapping[str, Any]) -> UserRecord:
	profile = ProfileRecord.from_record(row) if row.get("profile_user_id") is not None else None
	return UserRecord(
		id=str(row["id"]),
		role=str(row["role"]),
		first_name=row.get("first_name"),
		last_name=row.get("last_name"),
		email=row.get("email"),
		profile=profile,
	)


def _ids(values: Iterable[str]) -> list[str]:
	return sorted({str(value) for value in values})


class PostgresConnectionGraphRepository(ConnectionGraphRepository):
	"""Reads and writes the connection graph using asyncpg.

	Bound to either the pool (autocommit reads) or a single connection inside
	a transaction opened by `transaction()`.
	"""

	def __init__(self, executor: Executor, *, bound: bool = False) -> None:
		self._executor = executor
		self._bound = bound

	async def get_user(self, user_id: str) -> UserRecord | None:
		users = await self.get_users_batch([user_id])
		return users.get(str(user_id))

	async def get_users_batch(self, user_ids: Iterable[str]) -> dict[str, UserRecord]:
		ids = _ids(user_ids)
		if not ids:
			return {}
		rows = await self._executor.fetch(_USERS_WITH_PROFILE_SQL, ids)
		return {str(row["id"]): _row_to_user(row) for row in rows}

	async def get_accepted_edges_touching(self, user_ids: Iterable[str]) -> Sequence[Connection]:
		ids = _ids(user_ids)
		if not ids:
			return []
		rows = await self._executor.fetch(
			f"""
			SELECT {_CONNECTION_COLUMNS}
			FROM connections
			WHERE status = 'accepted'
			  AND (requester_id = ANY($1::uuid[]) OR addressee_id = ANY($1::uuid[]))
			ORDER BY created_at, id
			""",
			ids,
		)
		return [Connection.from_record(row) for row in rows]

	async def get_pending_edges_for_user(self, user_id: str) -> Sequence[Connection]:
		rows = await self._executor.fetch(
			f"""
			SELECT {_CONNECTION_COLUMNS}
			FROM connections
			WHERE status = 'pending'
			  AND (requester_id = $1 OR addressee_id = $1)
			ORDER BY created_at DESC, id DESC
			""",
			str(user_id),
		)
		return [Connection.from_record(row) for row in rows]

	async def get_responded_edges_for_addressee(self, user_id: str) -> Sequence[Connection]:
		rows = await self._executor.fetch(
			f"""
			SELECT {_CONNECTION_COLUMNS}
			FROM connections
			WHERE addressee_id = $1
			  AND status IN ('accepted', 'rejected')
			""",
			str(user_id),
		)
		return [Connection.from_record(row) for row in rows]

	async def get_edge(self, edge_id: str, *, for_update: bool = False) -> Connection | None:
		lock = " FOR UPDATE" if for_update else ""
		row = await self._executor.fetchrow(
			f"SELECT {_CONNECTION_COLUMNS} FROM connections WHERE id = $1{lock}",
			str(edge_id),
		)
		return Connection.from_record(row) if row else None

	async def find_open_edge_between(self, user_a: str, user_b: str) -> Connection | None:
		row = await self._executor.fetchrow(
			f"""
			SELECT {_CONNECTION_COLUMNS}
			FROM connections
			WHERE status IN ('pending', 'accepted')
			  AND ((requester_id = $1 AND addressee_id = $2) OR (requester_id = $2 AND addressee_id = $1))
			LIMIT 1
			""",
			str(user_a),
			str(user_b),
		)
		return Connection.from_record(row) if row else None

	async def create_edge(
		self,
		requester_id: str,
		addressee_id: str,
		*,
		status: ConnectionStatus = ConnectionStatus.PENDING,
		relationship_tag: str | None = None,
		notes: str | None = None,
	) -> Connection:
		try:
			row = await self._executor.fetchrow(
				f"""
				INSERT INTO connections (requester_id, addressee_id, status, relationship_tag, notes)
				VALUES ($1, $2, $3, $4, $5)
				RETURNING {_CONNECTION_COLUMNS}
				""",
				str(requester_id),
				str(addressee_id),
				status.value,
				relationship_tag,
				notes,
			)
		except asyncpg.UniqueViolationError:
			raise ConflictError("already_pending", "A connection already exists between these members.") from None
		if row is None:  # pragma: no cover - asyncpg always returns a row for RETURNING
			raise RuntimeError("Failed to insert connection")
		return Connection.from_record(row)

	async def update_edge_status(
		self,
		edge_id: str,
		status: ConnectionStatus,
		*,
		connected_at: datetime | None = None,
	) -> Connection:
		row = await self._executor.fetchrow(
			f"""
			UPDATE connections
			SET status = $2,
				responded_at = CASE WHEN $2 IN ('accepted', 'rejected') THEN NOW() ELSE responded_at END,
				connected_at = COALESCE(connected_at, $3),
				updated_at = NOW()
			WHERE id = $1
			RETURNING {_CONNECTION_COLUMNS}
			""",
			str(edge_id),
			status.value,
			connected_at,
		)
		if row is None:
			raise RuntimeError(f"connection {edge_id} vanished during update")
		return Connection.from_record(row)

	async def update_edge_annotations(self, edge_id: str, changes: Mapping[str, object]) -> Connection:
		assignments: list[str] = []
		params: list[object] = [str(edge_id)]
		for column in _ANNOTATION_COLUMNS:
			if column in changes:
				params.append(changes[column])
				assignments.append(f"{column} = ${len(params)}")
		assignments.append("updated_at = NOW()")
		row = await self._executor.fetchrow(
			f"""
			UPDATE connections
			SET {", ".join(assignments)}
			WHERE id = $1
			RETURNING {_CONNECTION_COLUMNS}
			""",
			*params,
		)
		if row is None:
			raise RuntimeError(f"connection {edge_id} vanished during update")
		return Connection.from_record(row)

	async def delete_edge(self, edge_id: str) -> None:
		await self._executor.execute("DELETE FROM connections WHERE id = $1", str(edge_id))

	@asynccontextmanager
	async def transaction(self, lock_key: Optional[str] = None) -> AsyncIterator["PostgresConnectionGraphRepository"]:
		if self._bound:
			async with self._executor.transaction():
				await self._advisory_lock(self._executor, lock_key)
				yield self
			return
		async with self._executor.acquire() as conn:
			async with conn.transaction():
				await self._advisory_lock(conn, lock_key)
				yield PostgresConnectionGraphRepository(conn, bound=True)

	@staticmethod
	async def _advisory_lock(conn: asyncpg.Connection, lock_key: Optional[str]) -> None:
		if lock_key:
			await conn.execute("SELECT pg_advisory_xact_lock(hashtext($1))", f"connections:{lock_key}")
