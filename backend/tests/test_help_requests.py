import asyncio
import uuid

from sqlalchemy import select

from helpbuddy import kafka
from helpbuddy.client.api import BackendError
from helpbuddy.models import HelpRequest
from helpbuddy.services import help_service


def _connected_pair(client, make_user):
    student, student_token = make_user("ana", "student")
    _, parent_token = make_user("maria", "parent")
    resp = client.post(
        "/rpc/connect_to_student_rpc",
        json={"session_token": parent_token, "connection_code": student["connection_code"]},
    )
    assert resp.status_code == 200
    return student, student_token, parent_token


def test_second_active_request_is_rejected(client, make_user):
    _, token = make_user("ana", "student")

    first = client.post("/rpc/create_help_request_rpc", json={"session_token": token})
    second = client.post("/rpc/create_help_request_rpc", json={"session_token": token})

    assert first.status_code == 200
    assert first.json()[0]["is_active"] is True
    assert second.status_code == 409
    assert second.json()["detail"] == "Você já tem um pedido de ajuda ativo"


def test_storage_guard_blocks_duplicate_when_precheck_misses(client, make_user, run_db, bearer, monkeypatch):
    student, token = make_user("ana", "student")

    async def no_active(db, student_id):
        return None
    # simula duas submissões que passaram pela checagem prévia ao mesmo tempo
    monkeypatch.setattr(help_service, "active_help_request", no_active)

    first = client.post("/help_requests", headers=bearer(token))
    second = client.post("/help_requests", headers=bearer(token))

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json()["detail"] == "Você já tem um pedido de ajuda ativo"

    async def active_rows(db):
        rows = await db.execute(
            select(HelpRequest).where(HelpRequest.student_id == uuid.UUID(student["id"]), HelpRequest.is_active.is_(True))
        )
        return len(rows.scalars().all())
    assert run_db(active_rows) == 1


def test_concurrent_submissions_leave_one_active_request(make_user, with_api, run_db):
    student, token = make_user("ana", "student")

    async def scenario(api):
        calls = [api.rpc("create_help_request_rpc", {"session_token": token}) for _ in range(5)]
        return await asyncio.gather(*calls, return_exceptions=True)

    results = with_api(scenario)

    created = [r for r in results if not isinstance(r, BaseException)]
    rejected = [r for r in results if isinstance(r, BackendError)]
    assert len(created) == 1
    assert created[0][0]["is_active"] is True
    assert len(rejected) == 4
    assert {e.status_code for e in rejected} == {409}

    async def active_rows(db):
        rows = await db.execute(
            select(HelpRequest).where(HelpRequest.student_id == uuid.UUID(student["id"]), HelpRequest.is_active.is_(True))
        )
        return len(rows.scalars().all())
    assert run_db(active_rows) == 1


def test_only_students_create_requests(client, make_user, bearer):
    _, token = make_user("maria", "parent")

    assert client.post("/help_requests", headers=bearer(token)).status_code == 403


def test_resolve_twice(client, make_user):
    _, student_token, parent_token = _connected_pair(client, make_user)
    hr = client.post("/rpc/create_help_request_rpc", json={"session_token": student_token}).json()[0]
    body = {"session_token": parent_token, "help_request_id": hr["id"]}

    first = client.post("/rpc/resolve_help_request_rpc", json=body)
    second = client.post("/rpc/resolve_help_request_rpc", json=body)

    assert first.status_code == 200
    assert first.json()[0]["is_active"] is False
    assert first.json()[0]["resolved_at"] is not None
    assert second.status_code == 404
    assert second.json()["detail"] == "Pedido de ajuda não encontrado ou já resolvido"


def test_resolve_table_path_returns_affected_rows(client, make_user, bearer):
    _, student_token, parent_token = _connected_pair(client, make_user)
    hr = client.post("/help_requests", headers=bearer(student_token)).json()

    first = client.post(f"/help_requests/{hr['id']}/resolve", headers=bearer(parent_token))
    second = client.post(f"/help_requests/{hr['id']}/resolve", headers=bearer(parent_token))

    assert first.status_code == 200
    assert [row["id"] for row in first.json()] == [hr["id"]]
    assert second.status_code == 200
    assert second.json() == []


def test_resolve_validates_id_and_permissions(client, make_user):
    _, student_token, parent_token = _connected_pair(client, make_user)
    _, stranger_token = make_user("joao", "educator")
    hr = client.post("/rpc/create_help_request_rpc", json={"session_token": student_token}).json()[0]

    malformed = client.post(
        "/rpc/resolve_help_request_rpc", json={"session_token": parent_token, "help_request_id": "abc"}
    )
    stranger = client.post(
        "/rpc/resolve_help_request_rpc", json={"session_token": stranger_token, "help_request_id": hr["id"]}
    )
    by_student = client.post(
        "/rpc/resolve_help_request_rpc", json={"session_token": student_token, "help_request_id": hr["id"]}
    )
    missing = client.post(
        "/rpc/resolve_help_request_rpc",
        json={"session_token": parent_token, "help_request_id": str(uuid.uuid4())},
    )

    assert malformed.status_code == 400
    assert malformed.json()["detail"] == "ID de pedido de ajuda inválido"
    assert stranger.status_code == 403
    assert by_student.status_code == 403
    assert missing.status_code == 404


def test_student_can_ask_again_after_resolution(client, make_user, bearer):
    _, student_token, parent_token = _connected_pair(client, make_user)
    hr = client.post("/help_requests", headers=bearer(student_token)).json()
    client.post(f"/help_requests/{hr['id']}/resolve", headers=bearer(parent_token))

    again = client.post("/help_requests", headers=bearer(student_token))
    active = client.get("/help_requests", params={"is_active": True}, headers=bearer(parent_token)).json()
    everything = client.get("/help_requests", headers=bearer(parent_token)).json()

    assert again.status_code == 201
    assert [row["id"] for row in active] == [again.json()["id"]]
    assert [row["id"] for row in everything] == [again.json()["id"], hr["id"]]


def test_changes_are_published(client, make_user, monkeypatch):
    published = []

    async def fake_publish(event_type, help_request):
        published.append((event_type, str(help_request.id), help_request.is_active))
        return True
    monkeypatch.setattr(kafka, "publish_help_request_change", fake_publish)

    _, student_token, parent_token = _connected_pair(client, make_user)
    hr = client.post("/rpc/create_help_request_rpc", json={"session_token": student_token}).json()[0]
    client.post(
        "/rpc/resolve_help_request_rpc", json={"session_token": parent_token, "help_request_id": hr["id"]}
    )

    assert published == [("INSERT", hr["id"], True), ("UPDATE", hr["id"], False)]
