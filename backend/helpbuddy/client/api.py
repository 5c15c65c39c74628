from __future__ import annotations
import logging
from typing import Any, Dict, Optional

import httpx
from httpx import Timeout

from helpbuddy import config

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = Timeout(10.0, read=30.0)


class BackendError(RuntimeError):
    """Erro vindo do backend (status HTTP) ou da rede (status_code None)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _detail(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text or resp.reason_phrase
    detail = data.get("detail") if isinstance(data, dict) else None
    if isinstance(detail, list):
        # erro de validação do FastAPI (422)
        return "; ".join(str(item.get("msg", item)) for item in detail if item)
    if detail:
        return str(detail)
    return resp.text or resp.reason_phrase


class HelpBuddyApi:
    """
    Acesso HTTP ao backend. O token de sessão é sempre passado por chamada;
    esta classe não guarda identidade.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Timeout = DEFAULT_TIMEOUT,
    ):
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=base_url or config.HELPBUDDY_API_URL, timeout=timeout
        )

    async def __aenter__(self) -> "HelpBuddyApi":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        **kwargs: Any,
    ) -> Any:
        headers: Dict[str, str] = kwargs.pop("headers", None) or {}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            resp = await self.client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise BackendError(f"falha de rede: {e}") from e

        logger.debug("%s %s -> %s", method, path, resp.status_code)
        if resp.status_code >= 400:
            raise BackendError(_detail(resp), resp.status_code)
        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise BackendError(f"resposta inválida do servidor: {resp.text[:200]!r}", resp.status_code) from e

    async def rpc(self, name: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("POST", f"/rpc/{name}", json=params or {})

    async def get(self, path: str, token: Optional[str] = None, params: Any = None) -> Any:
        return await self.request("GET", path, token=token, params=params)

    async def post(self, path: str, token: Optional[str] = None, json: Any = None) -> Any:
        return await self.request("POST", path, token=token, json=json)

    async def put(self, path: str, token: Optional[str] = None, json: Any = None) -> Any:
        return await self.request("PUT", path, token=token, json=json)

    async def delete(self, path: str, token: Optional[str] = None, json: Any = None) -> Any:
        return await self.request("DELETE", path, token=token, json=json)
