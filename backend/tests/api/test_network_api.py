from uuid import uuid4

import pytest

from netgraph.domain.network.models import ConnectionStatus


def _as(user):
    return {"X-User-Id": user.id}


@pytest.mark.asyncio
async def test_my_network(api_client, graph):
    response = await api_client.get("/network/me", headers=_as(graph["origin"]))

    assert response.status_code == 200
    body = response.json()
    assert body["summary"]["total"] == 3
    assert body["first_degree"][0]["id"] == graph["a"].id
    assert body["pending"] is None


@pytest.mark.asyncio
async def test_network_requires_identity(api_client, graph):
    response = await api_client.get(f"/network/{graph['origin'].id}")

    assert response.status_code == 401
    assert response.json()["detail"] == "missing_identity"


@pytest.mark.asyncio
async def test_viewing_someone_else_is_forbidden(api_client, graph):
    response = await api_client.get(f"/network/{graph['origin'].id}", headers=_as(graph["c"]))

    assert response.status_code == 403
    assert response.json()["detail"] == "view_forbidden"


@pytest.mark.asyncio
async def test_unknown_subject_is_404(api_client, graph):
    response = await api_client.get(f"/network/{uuid4()}", headers=_as(graph["origin"]))

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_include_pending(api_client, repo, graph, make_user, make_edge):
    asker = repo.add_user(make_user("Ash Asker"))
    repo.add_edge(make_edge(asker, graph["origin"], ConnectionStatus.PENDING))

    response = await api_client.get(
        f"/network/{graph['origin'].id}", params={"include_pending": "true"}, headers=_as(graph["origin"])
    )

    assert response.status_code == 200
    incoming = response.json()["pending"]["incoming"]
    assert [item["user_id"] for item in incoming] == [asker.id]


@pytest.mark.asyncio
async def test_request_respond_flow(api_client, repo, graph):
    created = await api_client.post(
        "/connections", json={"target_id": graph["c"].id, "note": "Hi"}, headers=_as(graph["origin"])
    )
    assert created.status_code == 201
    edge = created.json()
    assert edge["status"] == "pending"
    assert edge["notes"] == "Hi"

    duplicate = await api_client.post("/connections", json={"target_id": graph["origin"].id}, headers=_as(graph["c"]))
    assert duplicate.status_code == 409
    assert duplicate.json()["detail"] == "already_pending"

    wrong_user = await api_client.post(
        f"/connections/{edge['id']}/respond", json={"decision": "accept"}, headers=_as(graph["origin"])
    )
    assert wrong_user.status_code == 403
    assert wrong_user.json()["detail"] == "not_addressee"

    accepted = await api_client.post(
        f"/connections/{edge['id']}/respond", json={"decision": "accept"}, headers=_as(graph["c"])
    )
    assert accepted.status_code == 200
    assert accepted.json()["status"] == "accepted"
    assert repo.edges[edge["id"]].status == ConnectionStatus.ACCEPTED


@pytest.mark.asyncio
async def test_self_connection_is_422(api_client, graph):
    response = await api_client.post("/connections", json={"target_id": graph["a"].id}, headers=_as(graph["a"]))

    assert response.status_code == 422
    assert response.json()["detail"] == "self_connection"


@pytest.mark.asyncio
async def test_invalid_decision_fails_validation(api_client, graph):
    response = await api_client.post(
        f"/connections/{uuid4()}/respond", json={"decision": "maybe"}, headers=_as(graph["a"])
    )

    assert response.status_code == 422
    assert response.json()["detail"] == "validation_error"


@pytest.mark.asyncio
async def test_withdraw_and_annotate(api_client, repo, graph):
    created = await api_client.post("/connections", json={"target_id": graph["c"].id}, headers=_as(graph["a"]))
    edge_id = created.json()["id"]

    annotated = await api_client.patch(
        f"/connections/{edge_id}", json={"relationship_tag": "Partner"}, headers=_as(graph["c"])
    )
    assert annotated.status_code == 200
    assert annotated.json()["relationship_tag"] == "Partner"

    not_mine = await api_client.post(f"/connections/{edge_id}/withdraw", headers=_as(graph["c"]))
    assert not_mine.status_code == 403

    withdrawn = await api_client.post(f"/connections/{edge_id}/withdraw", headers=_as(graph["a"]))
    assert withdrawn.status_code == 200
    assert withdrawn.json()["status"] == "withdrawn"
    assert edge_id not in repo.edges

    missing = await api_client.post(f"/connections/{edge_id}/withdraw", headers=_as(graph["a"]))
    assert missing.status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method,path,body",
    [
        ("GET", "/network/abc", None),
        ("POST", "/connections", {"target_id": "abc"}),
        ("POST", "/connections/abc/respond", {"decision": "accept"}),
        ("POST", "/connections/abc/withdraw", None),
        ("PATCH", "/connections/abc", {"notes": "hi"}),
    ],
)
async def test_malformed_ids_are_rejected_before_storage(api_client, repo, graph, method, path, body):
    repo.reads.clear()

    response = await api_client.request(method, path, json=body, headers=_as(graph["origin"]))

    assert response.status_code == 422
    assert response.json()["detail"] == "validation_error"
    assert repo.reads == []
    assert len(repo.edges) == 3


@pytest.mark.asyncio
async def test_malformed_identity_header_is_401(api_client, graph):
    response = await api_client.get("/network/me", headers={"X-User-Id": "not-a-uuid"})

    assert response.status_code == 401
    assert response.json()["detail"] == "invalid_identity"
