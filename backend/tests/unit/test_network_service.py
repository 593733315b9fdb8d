from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from netgraph.domain.network.exceptions import AuthorizationError, NotFoundError, ValidationError
from netgraph.domain.network.models import Connection, ConnectionStatus
from netgraph.domain.network.service import NetworkQueryService, degree_label


@pytest.fixture
def service(repo):
    return NetworkQueryService(repo)


@pytest.mark.asyncio
async def test_chain_payload(service, graph):
    payload = await service.build_connection_network(graph["origin"].id)

    assert payload.summary.first_degree == 1
    assert payload.summary.second_degree == 1
    assert payload.summary.third_degree == 1
    assert payload.summary.total == 3
    assert payload.subject.id == graph["origin"].id
    assert payload.viewer.id == graph["origin"].id
    assert payload.subject.headline == "Founder"

    first = payload.first_degree[0]
    assert first.name == "Ada Alpha"
    assert first.degree_label == "1st degree"
    assert first.mutual_connections == 0
    assert first.connectors == []
    assert first.actions.can_message is True
    assert first.actions.can_request_connection is False
    assert first.actions.requires_introduction is False

    second = payload.second_degree[0]
    assert second.id == graph["b"].id
    assert second.mutual_connections == 1
    assert [ref.name for ref in second.connectors] == ["Ada Alpha"]
    assert [ref.id for ref in second.path] == [graph["origin"].id, graph["a"].id, graph["b"].id]
    assert second.actions.can_message is False
    assert second.actions.can_request_connection is True
    assert second.actions.requires_introduction is True

    third = payload.third_degree[0]
    assert third.id == graph["c"].id
    assert third.degree == 3
    assert [ref.id for ref in third.path] == [graph[key].id for key in ("origin", "a", "b", "c")]
    assert [ref.name for ref in third.connectors] == ["Ben Beta"]
    assert payload.pending is None
    assert payload.policy.actor_role == "user"


@pytest.mark.asyncio
async def test_reads_are_batched(service, repo, graph):
    await service.build_connection_network(graph["origin"].id)

    assert [name for name, _ in repo.reads] == [
        "get_user",
        "get_accepted_edges_touching",
        "get_accepted_edges_touching",
        "get_accepted_edges_touching",
        "get_responded_edges_for_addressee",
        "get_users_batch",
    ]


@pytest.mark.asyncio
async def test_validation_and_missing_subject(service):
    with pytest.raises(ValidationError) as exc_info:
        await service.build_connection_network("  ")
    assert exc_info.value.reason == "missing_user_id"
    with pytest.raises(NotFoundError):
        await service.build_connection_network(str(uuid4()))


@pytest.mark.asyncio
async def test_other_members_cannot_view(service, graph):
    with pytest.raises(AuthorizationError) as exc_info:
        await service.build_connection_network(graph["origin"].id, graph["b"].id)
    assert exc_info.value.reason == "view_forbidden"


@pytest.mark.asyncio
async def test_admin_can_view_any_network(service, repo, graph, make_user):
    admin = repo.add_user(make_user("Ari Admin", role="admin"))

    payload = await service.build_connection_network(graph["origin"].id, admin.id)

    assert payload.viewer.id == admin.id
    assert payload.summary.total == 3
    assert payload.policy.actor_role == "user"


@pytest.mark.asyncio
async def test_role_blocked_nodes_explain_why(repo, make_user, make_edge):
    mentor = repo.add_user(make_user("Mo Mentor", role="mentor"))
    friend = repo.add_user(make_user("Fay Freelancer", role="freelancer"))
    company = repo.add_user(make_user("Cal Company", role="company"))
    repo.add_edge(make_edge(mentor, friend))
    repo.add_edge(make_edge(friend, company))

    payload = await NetworkQueryService(repo).build_connection_network(mentor.id)

    node = payload.second_degree[0]
    assert node.actions.can_request_connection is False
    assert node.actions.reason == "Mentor accounts cannot connect with company accounts."


@pytest.mark.asyncio
async def test_suggestions_rank_by_mutuals_and_cap(repo, make_user, make_edge):
    origin = repo.add_user(make_user("Olive Origin"))
    hub_a = repo.add_user(make_user("Hub Alpha"))
    hub_b = repo.add_user(make_user("Hub Beta"))
    repo.add_edge(make_edge(origin, hub_a))
    repo.add_edge(make_edge(origin, hub_b))
    strangers = [repo.add_user(make_user(f"Stranger {chr(65 + i)}")) for i in range(10)]
    for stranger in strangers:
        repo.add_edge(make_edge(hub_a, stranger))
    for stranger in strangers[-2:]:
        repo.add_edge(make_edge(hub_b, stranger))

    payload = await NetworkQueryService(repo).build_connection_network(origin.id)

    suggested = payload.suggested_connections
    assert len(suggested) == 8
    assert [node.name for node in suggested[:2]] == ["Stranger I", "Stranger J"]
    assert all(node.mutual_connections == 1 for node in suggested[2:])
    assert [node.name for node in suggested[2:]] == [f"Stranger {c}" for c in "ABCDEF"]


@pytest.mark.asyncio
async def test_custom_suggestion_limit(repo, graph):
    payload = await NetworkQueryService(repo, suggestion_limit=0).build_connection_network(graph["origin"].id)
    assert payload.suggested_connections == []


@pytest.mark.asyncio
async def test_pending_and_analytics(service, repo, graph, make_user, make_edge):
    origin = graph["origin"]
    asker = repo.add_user(make_user("Ash Asker"))
    repo.add_edge(make_edge(asker, origin, ConnectionStatus.PENDING))
    for hours, status in ((2, ConnectionStatus.ACCEPTED), (26, ConnectionStatus.ACCEPTED), (50, ConnectionStatus.REJECTED)):
        other = repo.add_user(make_user(f"Old Contact{hours}"))
        repo.add_edge(make_edge(other, origin, status, responded_after=timedelta(hours=hours)))

    payload = await service.build_connection_network(origin.id, include_pending=True)

    assert [item.user_id for item in payload.pending.incoming] == [asker.id]
    hydrated = [ids for name, ids in repo.reads if name == "get_users_batch"]
    assert len(hydrated) == 1
    assert asker.id in hydrated[0]
    assert origin.id not in hydrated[0]
    assert payload.pending.outgoing == []
    assert payload.invitation_analytics.median_response == "26h"
    assert payload.invitation_analytics.acceptance_rate == 67
    assert payload.summary.first_degree == 3


@pytest.mark.asyncio
async def test_missing_profile_still_listed(service, repo, graph):
    ghost_id = str(uuid4())
    now = datetime.now(timezone.utc)
    repo.add_edge(
        Connection(
            id=str(uuid4()),
            requester_id=graph["origin"].id,
            addressee_id=ghost_id,
            status=ConnectionStatus.ACCEPTED,
            created_at=now,
            updated_at=now,
        )
    )

    payload = await service.build_connection_network(graph["origin"].id)

    ghost = next(node for node in payload.first_degree if node.id == ghost_id)
    assert ghost.name is None
    assert ghost.degree == 1


def test_degree_label():
    assert degree_label(2) == "2nd degree"
    assert degree_label(3) == "3rd degree"
