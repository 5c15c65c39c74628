import logging
from dataclasses import dataclass
from typing import Optional

from helpbuddy.client.api import BackendError, HelpBuddyApi
from helpbuddy.client.storage import TokenStore

logger = logging.getLogger(__name__)

# trecho da mensagem do backend -> texto mostrado ao usuário
LOGIN_ERRORS = [
    ("Usuário não encontrado", "Usuário não encontrado. Verifique o nome e tente novamente."),
    ("Credenciais inválidas", "Senha incorreta. Tente novamente."),
    (
        "não possui senha definida",
        "Este usuário não possui senha definida. Entre em contato com o administrador.",
    ),
]
REGISTER_ERRORS = [
    ("Nome de usuário já existe", "Nome de usuário já existe"),
    ("Username é obrigatório", "Nome de usuário é obrigatório"),
    ("Senha é obrigatória", "Senha é obrigatória"),
]


@dataclass
class AuthResult:
    success: bool
    error: Optional[str] = None


def map_error(message: str, table, prefix: str) -> str:
    for needle, text in table:
        if needle in message:
            return text
    return prefix + message


class AuthClient:
    """
    Sessão do lado do cliente: login, cadastro, verificação e logout.
    Nenhum método levanta exceção para erros de rede ou de regra; o
    resultado vem em AuthResult.
    """

    def __init__(self, api: HelpBuddyApi, store: Optional[TokenStore] = None):
        self.api = api
        self.store = store or TokenStore()
        self.user: Optional[dict] = None
        self.loading = True

    async def check_session(self) -> bool:
        try:
            token = self.store.get()
            if not token:
                self.user = None
                return False
            try:
                rows = await self.api.rpc("validate_session", {"p_session_token": token})
            except BackendError as e:
                logger.error("erro ao verificar sessão: %s", e)
                rows = None
            if not rows:
                logger.info("sessão inválida ou expirada, removendo token")
                self.store.clear()
                self.user = None
                return False
            self.user = rows[0]["user_data"]
            return True
        finally:
            self.loading = False

    async def login(self, username: str, password: str) -> AuthResult:
        normalized = username.strip().lower()
        try:
            rows = await self.api.rpc(
                "authenticate_user", {"p_username": normalized, "p_password": password}
            )
        except BackendError as e:
            logger.error("erro no RPC authenticate_user: %s", e)
            return AuthResult(False, map_error(e.message, LOGIN_ERRORS, "Erro no login: "))

        if rows:
            self._start_session(rows[0])
            logger.info("login bem-sucedido: %s", normalized)
            return AuthResult(True)
        return AuthResult(False, "Erro inesperado no login")

    async def register(
        self,
        username: str,
        role: str,
        password: str,
        avatar_url: Optional[str] = None,
    ) -> AuthResult:
        normalized = username.strip().lower()
        try:
            rows = await self.api.rpc(
                "register_user",
                {
                    "p_username": normalized,
                    "p_role": role,
                    "p_avatar_url": avatar_url or None,
                    "p_password": password,
                },
            )
        except BackendError as e:
            logger.error("erro no RPC register_user: %s", e)
            return AuthResult(False, map_error(e.message, REGISTER_ERRORS, "Erro ao criar usuário: "))

        if rows:
            self._start_session(rows[0])
            logger.info("usuário criado: %s (%s)", normalized, role)
            return AuthResult(True)
        return AuthResult(False, "Erro inesperado no registro")

    async def update_avatar(self, avatar_url: str) -> AuthResult:
        if self.user is None:
            return AuthResult(False, "Usuário não logado")
        try:
            updated = await self.api.put(
                "/user/avatar", token=self.store.get(), json={"avatar_url": avatar_url}
            )
        except BackendError as e:
            logger.error("erro ao atualizar avatar: %s", e)
            return AuthResult(False, "Erro ao atualizar avatar")
        self.user = updated or {**self.user, "avatar_url": avatar_url}
        return AuthResult(True)

    async def logout(self) -> None:
        try:
            token = self.store.get()
            if token:
                await self.api.delete("/auth/session", token=token)
        except BackendError as e:
            logger.error("erro ao fazer logout: %s", e)
        finally:
            self.store.clear()
            self.user = None

    def _start_session(self, row: dict) -> None:
        self.store.set(row["session_token"])
        self.user = row["user_data"]
