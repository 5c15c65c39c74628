import logging
import uuid
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from helpbuddy import errors, kafka
from helpbuddy.models import HelpRequest, User
from helpbuddy.services.connection_service import is_connected, is_guardian, visible_student_ids

logger = logging.getLogger(__name__)


def parse_help_request_id(value) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value).strip())
    except (TypeError, ValueError):
        raise errors.InvalidInputError(errors.INVALID_HELP_REQUEST_ID)


async def active_help_request(db: AsyncSession, student_id: uuid.UUID) -> Optional[HelpRequest]:
    q = select(HelpRequest).where(
        HelpRequest.student_id == student_id,
        HelpRequest.is_active.is_(True),
    )
    return (await db.execute(q)).scalars().first()


async def create_help_request(db: AsyncSession, user: User) -> HelpRequest:
    """
    Abre um pedido de ajuda ativo para o aluno.
    A checagem prévia dá a mensagem amigável; o índice único parcial
    uq_help_requests_one_active é quem garante a regra sob concorrência.
    """
    if user.role != "student":
        raise errors.ForbiddenError(errors.ONLY_STUDENTS)

    if await active_help_request(db, user.id) is not None:
        raise errors.ConflictError(errors.ACTIVE_HELP_REQUEST_EXISTS)

    student_id = user.id
    help_request = HelpRequest(student_id=student_id, is_active=True)
    db.add(help_request)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning("pedido de ajuda duplicado bloqueado pelo banco: student=%s", student_id)
        raise errors.ConflictError(errors.ACTIVE_HELP_REQUEST_EXISTS)

    logger.info("pedido de ajuda aberto: %s (%s)", user.username, help_request.id)
    await kafka.publish_help_request_change("INSERT", help_request)
    return help_request


async def resolve_help_request(db: AsyncSession, user: User, help_request_id) -> HelpRequest:
    """
    Marca o pedido como resolvido. O UPDATE só vale se o pedido ainda estiver
    ativo, então resolver duas vezes cai em "não encontrado ou já resolvido".
    """
    request_id = parse_help_request_id(help_request_id)
    if not is_guardian(user):
        raise errors.ForbiddenError(errors.ONLY_GUARDIANS_RESOLVE)

    help_request = await db.get(HelpRequest, request_id)
    if help_request is None:
        raise errors.NotFoundError(errors.HELP_REQUEST_NOT_FOUND)
    if not await is_connected(db, user, help_request.student_id):
        raise errors.ForbiddenError(errors.NOT_CONNECTED)

    res = await db.execute(
        update(HelpRequest)
        .where(HelpRequest.id == request_id, HelpRequest.is_active.is_(True))
        .values(is_active=False, resolved_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    if res.rowcount == 0:
        await db.rollback()
        raise errors.NotFoundError(errors.HELP_REQUEST_NOT_FOUND)
    await db.commit()
    await db.refresh(help_request)

    logger.info("pedido de ajuda resolvido por %s: %s", user.username, request_id)
    await kafka.publish_help_request_change("UPDATE", help_request)
    return help_request


async def list_help_requests(
    db: AsyncSession,
    user: User,
    student_ids: Optional[Iterable[uuid.UUID]] = None,
    is_active: Optional[bool] = None,
) -> list[HelpRequest]:
    ids = await visible_student_ids(db, user, student_ids)
    if not ids:
        return []
    q = select(HelpRequest).where(HelpRequest.student_id.in_(ids))
    if is_active is not None:
        q = q.where(HelpRequest.is_active.is_(is_active))
    q = q.order_by(HelpRequest.created_at.desc())
    return list((await db.execute(q)).scalars().all())
