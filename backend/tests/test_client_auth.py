import httpx
import pytest

from helpbuddy.client.auth import AuthClient, AuthResult
from helpbuddy.client.storage import TokenStore


@pytest.fixture
def store(tmp_path):
    return TokenStore(str(tmp_path / "state" / "session_token"))


def test_token_store_roundtrip_and_corrupt_file(tmp_path):
    store = TokenStore(str(tmp_path / "a" / "b" / "token"))
    assert store.get() is None

    store.set("abc")
    assert store.get() == "abc"

    store.clear()
    assert store.get() is None

    with open(store.path, "w", encoding="utf-8") as f:
        f.write("{not json")
    assert store.get() is None


def test_register_and_login_normalized(with_api, store):
    async def scenario(api):
        auth = AuthClient(api, store)
        registered = await auth.register("  Ana ", "student", "senha123")
        created_id = auth.user["id"]
        await auth.logout()

        first = await auth.login("  Ana ", "senha123")
        first_id = auth.user["id"]
        second = await auth.login("ana", "senha123")
        return registered, created_id, first, first_id, second, auth.user["id"]

    registered, created_id, first, first_id, second, second_id = with_api(scenario)

    assert registered == AuthResult(True)
    assert first.success and second.success
    assert created_id == first_id == second_id
    assert store.get() is not None


def test_login_error_messages(with_api, store, make_user):
    make_user("ana")

    async def scenario(api):
        auth = AuthClient(api, store)
        return (
            await auth.login("bia", "x"),
            await auth.login("ana", "errada"),
        )

    unknown, wrong = with_api(scenario)

    assert unknown == AuthResult(False, "Usuário não encontrado. Verifique o nome e tente novamente.")
    assert wrong == AuthResult(False, "Senha incorreta. Tente novamente.")
    assert store.get() is None


def test_register_error_messages(with_api, store, make_user):
    make_user("ana")

    async def scenario(api):
        auth = AuthClient(api, store)
        return (
            await auth.register("ana", "student", "x"),
            await auth.register("   ", "student", "x"),
            await auth.register("bia", "student", ""),
            await auth.register("bia", "admin", "x"),
        )

    dup, blank, no_pw, bad_role = with_api(scenario)

    assert dup.error == "Nome de usuário já existe"
    assert blank.error == "Nome de usuário é obrigatório"
    assert no_pw.error == "Senha é obrigatória"
    assert bad_role.error == "Erro ao criar usuário: Papel inválido"


def test_check_session(with_api, store):
    async def scenario(api):
        auth = AuthClient(api, store)
        await auth.register("ana", "student", "senha123")

        fresh = AuthClient(api, store)
        valid = await fresh.check_session()
        user = fresh.user

        store.set("garbage")
        invalid = await fresh.check_session()
        return valid, user, invalid, fresh.user, fresh.loading

    valid, user, invalid, after, loading = with_api(scenario)

    assert valid is True
    assert user["username"] == "ana"
    assert invalid is False
    assert after is None
    assert loading is False
    assert store.get() is None


def test_logout_removes_server_session(with_api, store, client):
    async def scenario(api):
        auth = AuthClient(api, store)
        await auth.register("ana", "student", "senha123")
        token = store.get()
        await auth.logout()
        return token, auth.user

    token, user = with_api(scenario)

    assert user is None
    assert store.get() is None
    assert client.post("/rpc/validate_session", json={"p_session_token": token}).json() == []


def test_network_failure_never_raises(with_api, store):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario(api):
        auth = AuthClient(api, store)
        login = await auth.login("ana", "x")
        store.set("stale")
        checked = await auth.check_session()
        await auth.logout()
        return login, checked

    login, checked = with_api(scenario, transport=httpx.MockTransport(refuse))

    assert login.success is False
    assert login.error.startswith("Erro no login: falha de rede")
    assert checked is False
    assert store.get() is None


def test_update_avatar(with_api, store):
    async def scenario(api):
        auth = AuthClient(api, store)
        not_logged = await auth.update_avatar("https://api.dicebear.com/7.x/bottts/svg?seed=x")
        await auth.register("ana", "student", "senha123")
        ok = await auth.update_avatar("https://api.dicebear.com/7.x/bottts/svg?seed=x")
        return not_logged, ok, auth.user

    not_logged, ok, user = with_api(scenario)

    assert not_logged == AuthResult(False, "Usuário não logado")
    assert ok == AuthResult(True)
    assert user["avatar_url"] == "https://api.dicebear.com/7.x/bottts/svg?seed=x"
