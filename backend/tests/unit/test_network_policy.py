import itertools

import pytest

from netgraph.domain.network import policy
from netgraph.domain.network.models import Role

ALL_ROLES = [role.value for role in Role]


@pytest.mark.parametrize("role_a,role_b", list(itertools.product(ALL_ROLES, repeat=2)))
def test_is_allowed_is_symmetric(role_a, role_b):
    assert policy.is_allowed(role_a, role_b) == policy.is_allowed(role_b, role_a)


def test_admin_only_connects_with_admin():
    for role in ALL_ROLES:
        expected = role == Role.ADMIN.value
        assert policy.is_allowed("admin", role) is expected


def test_mentor_cannot_connect_with_company():
    assert policy.is_allowed("mentor", "freelancer")
    assert not policy.is_allowed("mentor", "company")
    assert not policy.is_allowed("company", "mentor")


def test_unknown_role_uses_default_allowed_set():
    assert policy.allowed_roles("astronaut") == policy.DEFAULT_ALLOWED_ROLES
    assert policy.is_allowed("astronaut", "user") is False  # user's set does not list astronaut


def test_roles_are_normalised():
    assert policy.is_allowed(" Freelancer ", "USER")
    assert policy.is_allowed(Role.AGENCY, Role.COMPANY)


def test_build_matrix_applies_overrides_without_mutating_defaults():
    matrix = policy.build_matrix({"Mentor": ["user", "freelancer", "mentor", "company"], "company": ["company", "mentor"]})
    assert policy.is_allowed("mentor", "company", matrix)
    assert not policy.is_allowed("mentor", "company")
    assert "company" not in policy.DEFAULT_CONNECTION_MATRIX["mentor"]


def test_snapshot_lists_actor_allowed_roles_and_full_matrix():
    snap = policy.snapshot("Mentor")
    assert snap["actor_role"] == "mentor"
    assert snap["allowed_roles"] == ["freelancer", "mentor", "user"]
    assert snap["matrix"]["admin"] == ["admin"]
    assert set(snap["matrix"]) == set(ALL_ROLES)


def test_snapshot_without_role():
    snap = policy.snapshot(None)
    assert snap["actor_role"] is None
    assert snap["allowed_roles"] == sorted(policy.DEFAULT_ALLOWED_ROLES)
