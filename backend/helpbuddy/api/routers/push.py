from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from helpbuddy import errors
from helpbuddy.db import get_db
from helpbuddy.models import User
from helpbuddy.schemas import (
    PushSubscriptionCreate, PushSubscriptionDelete, PushSubscriptionPublic,
    PushSendReq, PushSendResult,
)
from helpbuddy.services.auth_service import get_current_user
from helpbuddy.services.connection_service import shares_connection
from helpbuddy.services import push_service

router = APIRouter(prefix="/push", tags=["push"])


@router.post("/subscriptions", response_model=PushSubscriptionPublic)
async def subscribe(
    req: PushSubscriptionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    # upsert pela chave user_id
    return await push_service.upsert_subscription(
        db, current_user, req.endpoint, req.p256dh, req.auth
    )


@router.delete("/subscriptions", status_code=status.HTTP_204_NO_CONTENT)
async def unsubscribe(
    req: PushSubscriptionDelete,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    await push_service.delete_subscription(db, current_user, req.endpoint)
    return None


@router.post("/send", response_model=PushSendResult)
async def send_push(
    req: PushSendReq,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Envia uma notificação para o próprio usuário ou para alguém conectado a ele.
    Falha de entrega não vira erro HTTP: delivered fica 0.
    """
    if req.user_id != current_user.id and not await shares_connection(db, current_user, req.user_id):
        raise errors.ForbiddenError(errors.NOT_CONNECTED)
    delivered = await push_service.send_notification(db, req.user_id, req.title, req.body)
    return PushSendResult(delivered=delivered)
