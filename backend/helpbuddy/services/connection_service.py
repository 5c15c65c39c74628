import logging
import uuid
from typing import Iterable, Optional

from sqlalchemy import select, delete, or_, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from helpbuddy import errors
from helpbuddy.models import Connection, User, GUARDIAN_ROLES
from helpbuddy.schemas import ConnectionRpcResult, ConnectionRow, ProfileSummary

logger = logging.getLogger(__name__)


def is_guardian(user: User) -> bool:
    return user.role in GUARDIAN_ROLES


async def list_connections(db: AsyncSession, user: User) -> list[Connection]:
    """Conexões do usuário: como responsável/educador ou como aluno."""
    q = select(Connection).options(
        joinedload(Connection.student),
        joinedload(Connection.parent_educator),
    )
    if is_guardian(user):
        q = q.where(Connection.parent_educator_id == user.id)
    else:
        q = q.where(Connection.student_id == user.id)
    q = q.order_by(Connection.created_at.desc())
    return list((await db.execute(q)).scalars().all())


async def connected_student_ids(db: AsyncSession, user: User) -> list[uuid.UUID]:
    if not is_guardian(user):
        return [user.id]
    res = await db.execute(
        select(Connection.student_id).where(Connection.parent_educator_id == user.id)
    )
    return list(res.scalars().all())


async def visible_student_ids(
    db: AsyncSession,
    user: User,
    requested: Optional[Iterable[uuid.UUID]] = None,
) -> list[uuid.UUID]:
    """
    Equivalente ao row-level security: o próprio aluno, ou os alunos
    conectados ao responsável. Filtros pedidos fora desse conjunto são ignorados.
    """
    allowed = {user.id, *await connected_student_ids(db, user)}
    if requested:
        return [student_id for student_id in dict.fromkeys(requested) if student_id in allowed]
    return list(allowed)


async def is_connected(db: AsyncSession, guardian: User, student_id: uuid.UUID) -> bool:
    res = await db.execute(
        select(Connection.id).where(
            Connection.parent_educator_id == guardian.id,
            Connection.student_id == student_id,
        )
    )
    return res.scalar_one_or_none() is not None


async def shares_connection(db: AsyncSession, user: User, other_id: uuid.UUID) -> bool:
    """Há conexão entre os dois, em qualquer direção."""
    res = await db.execute(
        select(Connection.id).where(
            or_(
                and_(Connection.parent_educator_id == user.id, Connection.student_id == other_id),
                and_(Connection.parent_educator_id == other_id, Connection.student_id == user.id),
            )
        )
    )
    return res.first() is not None


async def guardians_of(db: AsyncSession, student_id: uuid.UUID) -> list[User]:
    q = (
        select(User)
        .join(Connection, Connection.parent_educator_id == User.id)
        .where(Connection.student_id == student_id)
    )
    return list((await db.execute(q)).scalars().all())


async def find_student_by_code(db: AsyncSession, code: str) -> Optional[User]:
    normalized = (code or "").strip().upper()
    if not normalized:
        return None
    res = await db.execute(
        select(User).where(User.connection_code == normalized, User.role == "student")
    )
    return res.scalar_one_or_none()


async def create_connection(db: AsyncSession, user: User, student_id: uuid.UUID) -> Connection:
    if not is_guardian(user):
        raise errors.ForbiddenError(errors.ONLY_GUARDIANS_CONNECT)

    student = await db.get(User, student_id)
    if student is None or student.role != "student":
        raise errors.NotFoundError(errors.INVALID_CODE)

    conn = Connection(parent_educator_id=user.id, student_id=student.id)
    db.add(conn)
    try:
        await db.commit()
    except IntegrityError:
        # uq_connections_pair
        await db.rollback()
        raise errors.ConflictError(errors.ALREADY_CONNECTED)

    logger.info("conexão criada: %s -> %s", user.username, student.username)
    return await get_connection(db, conn.id)


async def connect_to_student(db: AsyncSession, user: User, connection_code: str) -> Connection:
    if not is_guardian(user):
        raise errors.ForbiddenError(errors.ONLY_GUARDIANS_CONNECT)
    student = await find_student_by_code(db, connection_code)
    if student is None:
        raise errors.NotFoundError(errors.INVALID_CODE)
    return await create_connection(db, user, student.id)


async def get_connection(db: AsyncSession, connection_id: uuid.UUID) -> Optional[Connection]:
    q = (
        select(Connection)
        .options(joinedload(Connection.student), joinedload(Connection.parent_educator))
        .where(Connection.id == connection_id)
        .execution_options(populate_existing=True)
    )
    return (await db.execute(q)).scalar_one_or_none()


async def remove_connection(db: AsyncSession, user: User, connection_id: uuid.UUID) -> None:
    conn = await db.get(Connection, connection_id)
    if conn is None:
        raise errors.NotFoundError(errors.CONNECTION_NOT_FOUND)
    if user.id not in (conn.parent_educator_id, conn.student_id):
        raise errors.ForbiddenError(errors.NOT_CONNECTION_PARTY)
    await db.execute(delete(Connection).where(Connection.id == connection_id))
    await db.commit()


def to_rpc_result(conn: Connection) -> ConnectionRpcResult:
    return ConnectionRpcResult(
        id=conn.id,
        parent_educator_id=conn.parent_educator_id,
        student_id=conn.student_id,
        created_at=conn.created_at,
        student_username=conn.student.username if conn.student else "",
        student_connection_code=conn.student.connection_code if conn.student else None,
    )


def to_row(conn: Connection) -> ConnectionRow:
    return ConnectionRow(
        id=conn.id,
        parent_educator_id=conn.parent_educator_id,
        student_id=conn.student_id,
        created_at=conn.created_at,
        student_profile=ProfileSummary.model_validate(conn.student) if conn.student else None,
        parent_educator_profile=(
            ProfileSummary.model_validate(conn.parent_educator) if conn.parent_educator else None
        ),
    )
