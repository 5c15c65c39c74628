import httpx
import pytest

from helpbuddy.client.auth import AuthClient
from helpbuddy.client.data import HelpBuddyData
from helpbuddy.client.storage import TokenStore
from helpbuddy.main import app

DATA_RPCS = {
    "get_connections_rpc", "get_mood_logs_rpc", "get_help_requests_rpc",
    "connect_to_student_rpc", "log_mood_rpc", "create_help_request_rpc", "resolve_help_request_rpc",
}


class NoDataRpcTransport(httpx.AsyncBaseTransport):
    """Backend antigo: as RPCs de dados não existem, só as tabelas."""

    def __init__(self):
        self.inner = httpx.ASGITransport(app=app)
        self.blocked = []

    async def handle_async_request(self, request):
        name = request.url.path.rsplit("/", 1)[-1]
        if request.url.path.startswith("/rpc/") and name in DATA_RPCS:
            self.blocked.append(name)
            return httpx.Response(404, json={"detail": "Not Found"}, request=request)
        return await self.inner.handle_async_request(request)


class Toasts:
    def __init__(self):
        self.items = []

    def __call__(self, kind, title, description=None):
        self.items.append((kind, title))

    def titles(self):
        return [title for _, title in self.items]


@pytest.fixture
def stores(tmp_path):
    return TokenStore(str(tmp_path / "student")), TokenStore(str(tmp_path / "parent"))


async def _login_pair(api, stores):
    student_auth = AuthClient(api, stores[0])
    parent_auth = AuthClient(api, stores[1])
    await student_auth.register("ana", "student", "senha123")
    await parent_auth.register("maria", "parent", "senha123")
    return student_auth, parent_auth


def test_full_flow_through_rpcs(with_api, stores):
    student_toasts, parent_toasts = Toasts(), Toasts()

    async def scenario(api):
        student_auth, parent_auth = await _login_pair(api, stores)
        student = HelpBuddyData(api, stores[0], student_auth.user, notify=student_toasts)
        parent = HelpBuddyData(api, stores[1], parent_auth.user, notify=parent_toasts)
        code = student_auth.user["connection_code"]

        connected = await parent.connect_to_student(code)
        connected_again = await parent.connect_to_student(code)

        await student.log_mood("happy")
        await student.log_mood("sad")
        created = await student.create_help_request()
        created_again = await student.create_help_request()
        student_active = student.has_active_help_request

        await parent.refetch()
        request_id = parent.help_requests[0]["id"]
        resolved = await parent.resolve_help_request(request_id)
        resolved_again = await parent.resolve_help_request(request_id)
        await student.fetch_help_requests()

        return {
            "connected": (connected, connected_again),
            "connections": parent.connections,
            "moods": [m["mood"] for m in student.mood_logs],
            "parent_moods": [m["mood"] for m in parent.mood_logs],
            "created": (created, created_again, student_active),
            "resolved": (resolved, resolved_again),
            "student_active_after": student.has_active_help_request,
        }

    out = with_api(scenario)

    assert out["connected"] == (True, False)
    assert len(out["connections"]) == 1
    assert out["connections"][0]["student_profile"]["username"] == "ana"
    assert out["moods"] == ["sad", "happy"]
    assert out["parent_moods"] == ["sad", "happy"]
    assert out["created"] == (True, False, True)
    assert out["resolved"] == (True, False)
    assert out["student_active_after"] is False
    assert parent_toasts.titles() == [
        "Conectado com sucesso! 🎉",
        "Já conectado",
        "Pedido de ajuda resolvido ✅",
        "Pedido de ajuda não encontrado ou já resolvido",
    ]
    assert student_toasts.titles() == [
        "Pedido de ajuda enviado! 🚨",
        "Você já tem um pedido de ajuda ativo",
    ]


def test_same_flow_through_direct_tables(with_api, stores):
    transport = NoDataRpcTransport()
    toasts = Toasts()

    async def scenario(api):
        student_auth, parent_auth = await _login_pair(api, stores)
        student = HelpBuddyData(api, stores[0], student_auth.user)
        parent = HelpBuddyData(api, stores[1], parent_auth.user, notify=toasts)

        assert await parent.connect_to_student(student_auth.user["connection_code"])
        assert not await parent.connect_to_student("ZZZZZZ")
        assert await student.log_mood("calm")
        assert await student.create_help_request()
        assert not await student.create_help_request()

        await parent.refetch()
        await parent.fetch_mood_logs()
        request_id = parent.help_requests[0]["id"]
        first = await parent.resolve_help_request(request_id)
        second = await parent.resolve_help_request(request_id)
        return parent, first, second

    parent, first, second = with_api(scenario, transport=transport)

    assert {"connect_to_student_rpc", "log_mood_rpc", "get_help_requests_rpc"} <= set(transport.blocked)
    assert parent.connections[0]["student_profile"]["username"] == "ana"
    assert [m["mood"] for m in parent.mood_logs] == ["calm"]
    assert (first, second) == (True, False)
    assert "Código inválido" in toasts.titles()
    assert parent.help_requests[0]["is_active"] is False


def test_business_errors_do_not_use_fallback(with_api, stores):
    toasts = Toasts()

    async def scenario(api):
        student_auth = AuthClient(api, stores[0])
        await student_auth.register("ana", "student", "senha123")
        other = AuthClient(api, stores[1])
        await other.register("bia", "student", "senha123")
        data = HelpBuddyData(api, stores[0], student_auth.user, notify=toasts)
        return await data.connect_to_student(other.user["connection_code"])

    assert with_api(scenario) is False
    assert toasts.items == [("error", "Erro ao conectar")]


def test_without_token_nothing_happens(with_api, tmp_path):
    toasts = Toasts()

    async def scenario(api):
        data = HelpBuddyData(api, TokenStore(str(tmp_path / "empty")), {"id": "x"}, notify=toasts)
        data.mood_logs = [{"mood": "happy"}]
        await data.refetch()
        return data, await data.connect_to_student("ABCDEF"), await data.create_help_request()

    data, connected, created = with_api(scenario)

    assert data.mood_logs == [{"mood": "happy"}]
    assert (connected, created) == (False, False)
    assert toasts.items == []


def test_invalid_request_id_is_rejected_locally(with_api, stores):
    toasts = Toasts()
    transport = NoDataRpcTransport()

    async def scenario(api):
        parent_auth = AuthClient(api, stores[1])
        await parent_auth.register("maria", "parent", "senha123")
        data = HelpBuddyData(api, stores[1], parent_auth.user, notify=toasts)
        return await data.resolve_help_request("not-a-uuid")

    assert with_api(scenario, transport=transport) is False
    assert toasts.items == [("error", "ID de pedido de ajuda inválido")]
    assert transport.blocked == []


def test_remove_connection(with_api, stores):
    async def scenario(api):
        student_auth, parent_auth = await _login_pair(api, stores)
        parent = HelpBuddyData(api, stores[1], parent_auth.user)
        await parent.connect_to_student(student_auth.user["connection_code"])
        removed = await parent.remove_connection(parent.connections[0]["id"])
        missing = await parent.remove_connection("00000000-0000-0000-0000-000000000000")
        return removed, missing, parent.connections

    removed, missing, connections = with_api(scenario)

    assert (removed, missing) == (True, False)
    assert connections == []
