"""Role matrix deciding which account types may connect with each other."""

from __future__ import annotations

from typing import Dict, FrozenSet, Iterable, Mapping, Optional

from netgraph.domain.network.models import Role

RoleMatrix = Mapping[str, FrozenSet[str]]

DEFAULT_ALLOWED_ROLES: FrozenSet[str] = frozenset(
	{Role.USER.value, Role.FREELANCER.value, Role.AGENCY.value, Role.COMPANY.value}
)

DEFAULT_CONNECTION_MATRIX: Dict[str, FrozenSet[str]] = {
	Role.USER.value: frozenset(
		{"user", "freelancer", "agency", "company", "mentor", "headhunter"}
	),
	Role.FREELANCER.value: frozenset(
		{"user", "freelancer", "agency", "company", "mentor", "headhunter"}
	),
	Role.AGENCY.value: frozenset({"user", "freelancer", "agency", "company", "headhunter"}),
	Role.COMPANY.value: frozenset({"user", "freelancer", "agency", "company", "headhunter"}),
	Role.MENTOR.value: frozenset({"user", "freelancer", "mentor"}),
	Role.HEADHUNTER.value: frozenset({"user", "freelancer", "agency", "company", "headhunter"}),
	Role.ADMIN.value: frozenset({"admin"}),
}


def _normalise(role: Optional[str]) -> str:
	if isinstance(role, Role):
		return role.value
	return str(role or "").strip().lower()


def build_matrix(overrides: Optional[Mapping[str, Iterable[str]]] = None) -> Dict[str, FrozenSet[str]]:
	"""Merge configured overrides over the static matrix."""
	matrix = dict(DEFAULT_CONNECTION_MATRIX)
	for role, allowed in (overrides or {}).items():
		matrix[_normalise(role)] = frozenset(_normalise(item) for item in allowed if _normalise(item))
	return matrix


def allowed_roles(role: Optional[str], matrix: Optional[RoleMatrix] = None) -> FrozenSet[str]:
	table = DEFAULT_CONNECTION_MATRIX if matrix is None else matrix
	return table.get(_normalise(role), DEFAULT_ALLOWED_ROLES)


def is_allowed(role_a: Optional[str], role_b: Optional[str], matrix: Optional[RoleMatrix] = None) -> bool:
	"""A connection needs each side's role in the other's allowed set."""
	a = _normalise(role_a)
	b = _normalise(role_b)
	return b in allowed_roles(a, matrix) and a in allowed_roles(b, matrix)


def snapshot(actor_role: Optional[str], matrix: Optional[RoleMatrix] = None) -> dict:
	table = DEFAULT_CONNECTION_MATRIX if matrix is None else matrix
	return {
		"actor_role": _normalise(actor_role) or None,
		"allowed_roles": sorted(allowed_roles(actor_role, table)),
		"matrix": {role: sorted(allowed) for role, allowed in sorted(table.items())},
	}
