"""Domain models for users, profiles and connection edges."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional


class Role(str, Enum):
	"""Account roles recognised by the connection policy."""

	USER = "user"
	FREELANCER = "freelancer"
	AGENCY = "agency"
	COMPANY = "company"
	MENTOR = "mentor"
	HEADHUNTER = "headhunter"
	ADMIN = "admin"


class ConnectionStatus(str, Enum):
	"""Stored edge states. Withdrawn edges are deleted, not stored."""

	PENDING = "pending"
	ACCEPTED = "accepted"
	REJECTED = "rejected"


class Decision(str, Enum):
	ACCEPT = "accept"
	REJECT = "reject"
	WITHDRAW = "withdraw"


OPEN_STATUSES = frozenset({ConnectionStatus.PENDING, ConnectionStatus.ACCEPTED})
RESPONDED_STATUSES = frozenset({ConnectionStatus.ACCEPTED, ConnectionStatus.REJECTED})

MAX_DEGREE = 3
RELATIONSHIP_TAG_MAX_LENGTH = 120
NOTES_MAX_LENGTH = 5000


def pair_key(user_a: str, user_b: str) -> str:
	"""Order-independent key for a pair of user ids."""
	low, high = sorted((str(user_a), str(user_b)))
	return f"{low}:{high}"


@dataclass(slots=True)
class ProfileRecord:
	"""Profile snapshot owned by the identity service."""

	headline: Optional[str] = None
	bio: Optional[str] = None
	location: Optional[str] = None
	avatar_url: Optional[str] = None
	avatar_seed: Optional[str] = None
	areas_of_focus: Any = None
	availability_status: Optional[str] = None
	available_hours_per_week: Optional[int] = None
	open_to_remote: Optional[bool] = None
	availability_notes: Optional[str] = None
	preferred_engagements: Any = None
	trust_score: Any = None

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "ProfileRecord":
		return cls(
			headline=record.get("headline"),
			bio=record.get("bio"),
			location=record.get("location"),
			avatar_url=record.get("avatar_url"),
			avatar_seed=record.get("avatar_seed"),
			areas_of_focus=record.get("areas_of_focus"),
			availability_status=record.get("availability_status"),
			available_hours_per_week=record.get("available_hours_per_week"),
			open_to_remote=record.get("open_to_remote"),
			availability_notes=record.get("availability_notes"),
			preferred_engagements=record.get("preferred_engagements"),
			trust_score=record.get("trust_score"),
		)


@dataclass(slots=True)
class UserRecord:
	"""Identity with role and optional profile."""

	id: str
	role: str
	first_name: Optional[str] = None
	last_name: Optional[str] = None
	email: Optional[str] = None
	profile: Optional[ProfileRecord] = None

	@property
	def display_name(self) -> Optional[str]:
		name = " ".join(part.strip() for part in (self.first_name, self.last_name) if part and part.strip())
		return name or self.email or None


@dataclass(slots=True)
class Connection:
	"""Directional edge between a requester and an addressee."""

	id: str
	requester_id: str
	addressee_id: str
	status: ConnectionStatus
	created_at: datetime
	updated_at: datetime
	responded_at: Optional[datetime] = None
	connected_at: Optional[datetime] = None
	last_interacted_at: Optional[datetime] = None
	relationship_tag: Optional[str] = None
	notes: Optional[str] = None

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "Connection":
		return cls(
			id=str(record["id"]),
			requester_id=str(record["requester_id"]),
			addressee_id=str(record["addressee_id"]),
			status=ConnectionStatus(record["status"]),
			created_at=record["created_at"],
			updated_at=record["updated_at"],
			responded_at=record.get("responded_at"),
			connected_at=record.get("connected_at"),
			last_interacted_at=record.get("last_interacted_at"),
			relationship_tag=record.get("relationship_tag"),
			notes=record.get("notes"),
		)

	@property
	def endpoints(self) -> tuple[str, str]:
		return (self.requester_id, self.addressee_id)

	def involves(self, user_id: str) -> bool:
		return str(user_id) in self.endpoints

	def counterpart(self, user_id: str) -> str:
		return self.addressee_id if self.requester_id == str(user_id) else self.requester_id


@dataclass(slots=True)
class DegreeEntry:
	"""Traversal metadata for one reachable node."""

	connectors: set[str] = field(default_factory=set)
	path: list[str] = field(default_factory=list)
	connected_at: Optional[datetime] = None
	last_interaction_at: Optional[datetime] = None
	relationship_tag: Optional[str] = None
	notes: Optional[str] = None
