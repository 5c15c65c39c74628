import logging
from typing import Any, Awaitable, Callable, Optional

from helpbuddy.client.api import BackendError

logger = logging.getLogger(__name__)

# respostas padrão do FastAPI/Starlette quando a rota RPC não existe
_MISSING_ROUTE_DETAILS = {"Not Found", "Method Not Allowed"}


def rpc_unavailable(exc: BaseException) -> bool:
    """
    True quando a falha indica que a função remota não está disponível
    (rede, erro 5xx, rota inexistente). Erros de regra de negócio não contam.
    """
    if not isinstance(exc, BackendError):
        return True
    if exc.status_code is None or exc.status_code >= 500:
        return True
    return exc.status_code in (404, 405) and exc.message in _MISSING_ROUTE_DETAILS


class FallbackCall:
    """
    Chama a RPC preferida e, se ela falhar, a consulta direta equivalente.
    Sem limite de tentativas e sem backoff: uma tentativa de cada.
    """

    def __init__(
        self,
        name: str,
        preferred: Callable[..., Awaitable[Any]],
        compatibility: Callable[..., Awaitable[Any]],
        fallback_on: Optional[Callable[[BaseException], bool]] = None,
    ):
        self.name = name
        self.preferred = preferred
        self.compatibility = compatibility
        self.fallback_on = fallback_on

    async def __call__(self, *args: Any, **kwargs: Any) -> Any:
        try:
            return await self.preferred(*args, **kwargs)
        except Exception as e:
            if self.fallback_on is not None and not self.fallback_on(e):
                raise
            logger.warning("%s: RPC falhou (%s), usando consulta direta", self.name, e)
        return await self.compatibility(*args, **kwargs)
