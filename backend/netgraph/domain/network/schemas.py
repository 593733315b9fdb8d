"""Pydantic schemas for connection network payloads and lifecycle requests."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class NodeSummary(BaseModel):
	id: str
	name: Optional[str] = None
	role: Optional[str] = None
	headline: Optional[str] = None
	location: Optional[str] = None
	avatar_url: Optional[str] = None
	avatar_seed: Optional[str] = None
	summary: Optional[str] = None
	focus_areas: List[str] = Field(default_factory=list)
	availability: List[str] = Field(default_factory=list)
	trust_score: Optional[float] = None


class NodeRef(BaseModel):
	id: str
	name: Optional[str] = None
	role: Optional[str] = None


class NodeActions(BaseModel):
	can_message: bool
	can_request_connection: bool
	requires_introduction: bool
	reason: Optional[str] = None


class NetworkNode(NodeSummary):
	degree: int
	degree_label: str
	mutual_connections: int
	connectors: List[NodeRef] = Field(default_factory=list)
	path: List[NodeRef] = Field(default_factory=list)
	connected_at: Optional[datetime] = None
	last_interaction_at: Optional[datetime] = None
	relationship_tag: Optional[str] = None
	notes: Optional[str] = None
	actions: NodeActions


class PendingInvitation(NodeSummary):
	connection_id: str
	user_id: str
	direction: Literal["incoming", "outgoing"]
	invited_by: Optional[str] = None
	note: Optional[str] = None
	relationship_tag: Optional[str] = None
	sent_at: datetime
	status: str
	mutual_connections: int


class PendingInvitations(BaseModel):
	incoming: List[PendingInvitation] = Field(default_factory=list)
	outgoing: List[PendingInvitation] = Field(default_factory=list)


class PolicySnapshot(BaseModel):
	actor_role: Optional[str] = None
	allowed_roles: List[str] = Field(default_factory=list)
	matrix: Dict[str, List[str]] = Field(default_factory=dict)


class NetworkCounts(BaseModel):
	first_degree: int = 0
	second_degree: int = 0
	third_degree: int = 0
	total: int = 0


class InvitationAnalyticsSummary(BaseModel):
	acceptance_rate: Optional[int] = None
	median_response: Optional[str] = None
	median_response_hours: Optional[float] = None
	closed_count: int = 0


class NetworkPayload(BaseModel):
	subject: NodeSummary
	viewer: NodeSummary
	policy: PolicySnapshot
	summary: NetworkCounts
	first_degree: List[NetworkNode] = Field(default_factory=list)
	second_degree: List[NetworkNode] = Field(default_factory=list)
	third_degree: List[NetworkNode] = Field(default_factory=list)
	pending: Optional[PendingInvitations] = None
	suggested_connections: List[NetworkNode] = Field(default_factory=list)
	invitation_analytics: InvitationAnalyticsSummary
	generated_at: datetime


class ConnectionOut(BaseModel):
	id: str
	requester_id: str
	addressee_id: str
	status: Literal["pending", "accepted", "rejected"]
	created_at: datetime
	updated_at: datetime
	responded_at: Optional[datetime] = None
	connected_at: Optional[datetime] = None
	last_interacted_at: Optional[datetime] = None
	relationship_tag: Optional[str] = None
	notes: Optional[str] = None


class ConnectionTransition(BaseModel):
	id: str
	status: Literal["pending", "accepted", "rejected", "withdrawn"]
	updated_at: datetime


class ConnectionRequestBody(BaseModel):
	target_id: UUID = Field(..., description="User the connection request is addressed to")
	note: Optional[str] = Field(default=None, description="Optional message shown with the invitation")
	relationship_tag: Optional[str] = Field(default=None, description="Optional label for the relationship")


class ConnectionRespondBody(BaseModel):
	decision: Literal["accept", "reject", "withdraw"]


class ConnectionAnnotateBody(BaseModel):
	relationship_tag: Optional[str] = None
	notes: Optional[str] = None
	last_interacted_at: Optional[datetime] = None
