import asyncio
import logging
import uuid
from typing import Callable, List, Optional

from helpbuddy.client.api import BackendError, HelpBuddyApi
from helpbuddy.client.fallback import FallbackCall, rpc_unavailable
from helpbuddy.client.storage import TokenStore

logger = logging.getLogger(__name__)

# notify(kind, title, description): kind em "success" | "error" | "info"
Notify = Callable[[str, str, Optional[str]], None]


def log_notify(kind: str, title: str, description: Optional[str] = None) -> None:
    logger.info("[%s] %s%s", kind, title, f" - {description}" if description else "")


def connection_from_rpc(row: dict) -> dict:
    """Linha plana do get_connections_rpc -> mesmo formato da consulta direta."""
    return {
        "id": row["id"],
        "parent_educator_id": row["parent_educator_id"],
        "student_id": row["student_id"],
        "created_at": row["created_at"],
        "student_profile": {
            "username": row.get("student_username"),
            "connection_code": row.get("student_connection_code"),
        },
    }


class HelpBuddyData:
    """
    Estado de conexões, humores e pedidos de ajuda do usuário logado.
    A identidade é explícita: o registro do usuário e o TokenStore entram
    no construtor.
    """

    def __init__(
        self,
        api: HelpBuddyApi,
        store: TokenStore,
        user: Optional[dict],
        notify: Optional[Notify] = None,
    ):
        self.api = api
        self.store = store
        self.user = user
        self.notify = notify or log_notify

        self.connections: List[dict] = []
        self.mood_logs: List[dict] = []
        self.help_requests: List[dict] = []
        self.loading = False

        self._connections_call = FallbackCall(
            "get_connections", self._rpc_connections, self._table_connections
        )
        self._mood_logs_call = FallbackCall(
            "get_mood_logs", self._rpc_mood_logs, self._table_mood_logs
        )
        self._help_requests_call = FallbackCall(
            "get_help_requests", self._rpc_help_requests, self._table_help_requests
        )
        self._connect_call = FallbackCall(
            "connect_to_student", self._rpc_connect, self._table_connect, fallback_on=rpc_unavailable
        )
        self._log_mood_call = FallbackCall(
            "log_mood", self._rpc_log_mood, self._table_log_mood, fallback_on=rpc_unavailable
        )
        self._create_help_call = FallbackCall(
            "create_help_request", self._rpc_create_help, self._table_create_help,
            fallback_on=rpc_unavailable,
        )
        self._resolve_help_call = FallbackCall(
            "resolve_help_request", self._rpc_resolve_help, self._table_resolve_help,
            fallback_on=rpc_unavailable,
        )

    # --- estado derivado ---
    @property
    def user_id(self) -> Optional[str]:
        return str(self.user["id"]) if self.user else None

    @property
    def has_active_help_request(self) -> bool:
        return any(
            hr.get("is_active") and str(hr.get("student_id")) == self.user_id
            for hr in self.help_requests
        )

    def visible_student_ids(self) -> List[str]:
        ids = [self.user_id] if self.user_id else []
        for conn in self.connections:
            student_id = str(conn["student_id"])
            if student_id not in ids:
                ids.append(student_id)
        return ids

    def _token(self) -> Optional[str]:
        token = self.store.get()
        if not token:
            logger.warning("sem token de sessão; operação ignorada")
        return token

    # --- leituras ---
    async def fetch_connections(self) -> None:
        token = self._token()
        if not token:
            return
        try:
            self.connections = await self._connections_call(token)
        except BackendError as e:
            logger.error("erro ao buscar conexões: %s", e)

    async def fetch_mood_logs(self) -> None:
        token = self._token()
        if not token:
            return
        try:
            self.mood_logs = await self._mood_logs_call(token)
        except BackendError as e:
            logger.error("erro ao buscar logs de humor: %s", e)

    async def fetch_help_requests(self) -> None:
        token = self._token()
        if not token:
            return
        try:
            self.help_requests = await self._help_requests_call(token)
        except BackendError as e:
            logger.error("erro ao buscar pedidos de ajuda: %s", e)

    async def refetch(self) -> None:
        await asyncio.gather(
            self.fetch_connections(),
            self.fetch_mood_logs(),
            self.fetch_help_requests(),
        )

    async def _rpc_connections(self, token: str) -> List[dict]:
        rows = await self.api.rpc("get_connections_rpc", {"session_token": token})
        return [connection_from_rpc(r) for r in rows or []]

    async def _table_connections(self, token: str) -> List[dict]:
        return await self.api.get("/connections", token=token) or []

    async def _rpc_mood_logs(self, token: str) -> List[dict]:
        return await self.api.rpc("get_mood_logs_rpc", {"session_token": token}) or []

    async def _table_mood_logs(self, token: str) -> List[dict]:
        return await self.api.get(
            "/mood_logs", token=token, params={"student_id": self.visible_student_ids()}
        ) or []

    async def _rpc_help_requests(self, token: str) -> List[dict]:
        return await self.api.rpc("get_help_requests_rpc", {"session_token": token}) or []

    async def _table_help_requests(self, token: str) -> List[dict]:
        return await self.api.get(
            "/help_requests", token=token, params={"student_id": self.visible_student_ids()}
        ) or []

    # --- mutações ---
    async def connect_to_student(self, connection_code: str) -> bool:
        token = self._token()
        if not token:
            return False
        self.loading = True
        try:
            await self._connect_call(token, connection_code.strip())
        except BackendError as e:
            logger.error("erro ao conectar: %s", e)
            if e.status_code == 409 or "Já conectado" in e.message:
                self.notify("error", "Já conectado", "Você já está conectado com este aluno")
            elif e.status_code == 404 or "Código inválido" in e.message:
                self.notify("error", "Código inválido", "Não foi possível encontrar um aluno com este código")
            else:
                self.notify("error", "Erro ao conectar", e.message)
            return False
        finally:
            self.loading = False

        self.notify("success", "Conectado com sucesso! 🎉", None)
        await self.fetch_connections()
        return True

    async def log_mood(self, mood: str) -> bool:
        token = self._token()
        if not token:
            return False
        try:
            await self._log_mood_call(token, mood)
        except BackendError as e:
            logger.error("erro ao registrar humor: %s", e)
            self.notify("error", "Erro ao registrar humor", e.message)
            return False
        await self.fetch_mood_logs()
        return True

    async def create_help_request(self) -> bool:
        token = self._token()
        if not token:
            return False
        try:
            await self._create_help_call(token)
        except BackendError as e:
            if e.status_code == 409:
                self.notify("info", "Você já tem um pedido de ajuda ativo", None)
            else:
                logger.error("erro ao criar pedido de ajuda: %s", e)
                self.notify("error", "Erro ao enviar pedido de ajuda", e.message)
            return False
        await self.fetch_help_requests()
        self.notify("success", "Pedido de ajuda enviado! 🚨", "Alguém virá te ajudar em breve")
        return True

    async def resolve_help_request(self, help_request_id: str) -> bool:
        try:
            request_id = str(uuid.UUID(str(help_request_id).strip()))
        except ValueError:
            self.notify("error", "ID de pedido de ajuda inválido", None)
            return False
        token = self._token()
        if not token:
            return False
        try:
            await self._resolve_help_call(token, request_id)
        except BackendError as e:
            if e.status_code == 404:
                self.notify("info", "Pedido de ajuda não encontrado ou já resolvido", None)
            else:
                logger.error("erro ao resolver pedido de ajuda: %s", e)
                self.notify("error", "Erro ao resolver pedido de ajuda", e.message)
            return False
        self.notify("success", "Pedido de ajuda resolvido ✅", None)
        await self.fetch_help_requests()
        return True

    async def remove_connection(self, connection_id: str) -> bool:
        token = self._token()
        if not token:
            return False
        try:
            await self.api.delete(f"/connections/{connection_id}", token=token)
        except BackendError as e:
            logger.error("erro ao remover conexão: %s", e)
            self.notify("error", "Erro ao remover conexão", e.message)
            return False
        self.notify("success", "Conexão removida", None)
        await self.fetch_connections()
        return True

    async def _rpc_connect(self, token: str, code: str) -> dict:
        rows = await self.api.rpc(
            "connect_to_student_rpc", {"session_token": token, "connection_code": code}
        )
        return rows[0]

    async def _table_connect(self, token: str, code: str) -> dict:
        student = await self.api.get(
            "/user/lookup", token=token, params={"connection_code": code, "role": "student"}
        )
        return await self.api.post("/connections", token=token, json={"student_id": student["id"]})

    async def _rpc_log_mood(self, token: str, mood: str) -> dict:
        rows = await self.api.rpc("log_mood_rpc", {"session_token": token, "mood_value": mood})
        return rows[0]

    async def _table_log_mood(self, token: str, mood: str) -> dict:
        return await self.api.post("/mood_logs", token=token, json={"mood": mood})

    async def _rpc_create_help(self, token: str) -> dict:
        rows = await self.api.rpc("create_help_request_rpc", {"session_token": token})
        return rows[0]

    async def _table_create_help(self, token: str) -> dict:
        return await self.api.post("/help_requests", token=token)

    async def _rpc_resolve_help(self, token: str, request_id: str) -> dict:
        rows = await self.api.rpc(
            "resolve_help_request_rpc", {"session_token": token, "help_request_id": request_id}
        )
        return rows[0]

    async def _table_resolve_help(self, token: str, request_id: str) -> dict:
        rows = await self.api.post(f"/help_requests/{request_id}/resolve", token=token)
        if not rows:
            raise BackendError("Pedido de ajuda não encontrado ou já resolvido", 404)
        return rows[0]
