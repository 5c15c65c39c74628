import logging
import uuid
from typing import Optional

import httpx
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from helpbuddy import config
from helpbuddy.models import PushSubscription, User
from helpbuddy.services.connection_service import guardians_of

logger = logging.getLogger(__name__)


class PushDeliveryError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


async def get_subscription(db: AsyncSession, user_id: uuid.UUID) -> Optional[PushSubscription]:
    return await db.get(PushSubscription, user_id)


async def upsert_subscription(
    db: AsyncSession, user: User, endpoint: str, p256dh: str, auth: str
) -> PushSubscription:
    """Uma inscrição por usuário; o mesmo endpoint em outro usuário é transferido."""
    await db.execute(
        delete(PushSubscription).where(
            PushSubscription.endpoint == endpoint,
            PushSubscription.user_id != user.id,
        )
    )
    sub = await get_subscription(db, user.id)
    if sub is None:
        sub = PushSubscription(user_id=user.id, endpoint=endpoint, p256dh=p256dh, auth=auth)
        db.add(sub)
    else:
        sub.endpoint = endpoint
        sub.p256dh = p256dh
        sub.auth = auth
    await db.commit()
    await db.refresh(sub)
    return sub


async def delete_subscription(db: AsyncSession, user: User, endpoint: str) -> bool:
    res = await db.execute(
        delete(PushSubscription).where(
            PushSubscription.user_id == user.id,
            PushSubscription.endpoint == endpoint,
        )
    )
    await db.commit()
    return res.rowcount > 0


def _gateway_payload(sub: PushSubscription, title: str, body: str) -> dict:
    return {
        "subscription": {
            "endpoint": sub.endpoint,
            "keys": {"p256dh": sub.p256dh, "auth": sub.auth},
        },
        "notification": {"title": title, "body": body},
    }


async def deliver(
    sub: PushSubscription, title: str, body: str, client: Optional[httpx.AsyncClient] = None
) -> None:
    if not config.PUSH_GATEWAY_URL:
        raise PushDeliveryError("PUSH_GATEWAY_URL is not set")

    headers = {"Content-Type": "application/json"}
    if config.PUSH_GATEWAY_TOKEN:
        headers["Authorization"] = f"Bearer {config.PUSH_GATEWAY_TOKEN}"

    payload = _gateway_payload(sub, title, body)
    if client is None:
        async with httpx.AsyncClient(timeout=10) as owned:
            resp = await owned.post(config.PUSH_GATEWAY_URL, json=payload, headers=headers)
    else:
        resp = await client.post(config.PUSH_GATEWAY_URL, json=payload, headers=headers)

    if resp.status_code >= 400:
        raise PushDeliveryError(
            f"gateway respondeu {resp.status_code}: {resp.text[:200]}", resp.status_code
        )


async def send_notification(
    db: AsyncSession,
    user_id: uuid.UUID,
    title: str,
    body: str,
    client: Optional[httpx.AsyncClient] = None,
) -> int:
    """
    Envia para a inscrição do usuário. Devolve quantas foram entregues (0 ou 1).
    Falhas de entrega só vão para o log.
    """
    sub = await get_subscription(db, user_id)
    if sub is None:
        logger.info("usuário %s sem inscrição push", user_id)
        return 0
    try:
        await deliver(sub, title, body, client=client)
    except (PushDeliveryError, httpx.HTTPError) as e:
        logger.error("falha ao enviar push para %s: %s", user_id, e)
        return 0
    return 1


async def notify_guardians_of_help_request(
    db: AsyncSession, student_id: uuid.UUID, client: Optional[httpx.AsyncClient] = None
) -> int:
    student = await db.get(User, student_id)
    if student is None:
        logger.warning("pedido de ajuda de aluno desconhecido: %s", student_id)
        return 0

    title = "🆘 Pedido de ajuda"
    body = f"{student.username} precisa de ajuda agora."
    delivered = 0
    for guardian in await guardians_of(db, student_id):
        delivered += await send_notification(db, guardian.id, title, body, client=client)
    return delivered
