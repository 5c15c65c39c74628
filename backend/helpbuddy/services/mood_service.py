import logging
import uuid
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from helpbuddy import config, errors
from helpbuddy.models import MoodLog, User, MOODS
from helpbuddy.services.connection_service import visible_student_ids

logger = logging.getLogger(__name__)

MOOD_LABELS = {
    "happy": "😊 Feliz",
    "sad": "😢 Triste",
    "calm": "😌 Calmo",
    "excited": "🤩 Animado",
    "focused": "🧐 Focado",
}


async def log_mood(db: AsyncSession, user: User, mood: str) -> MoodLog:
    """Registra o humor do próprio aluno. Registros nunca são alterados."""
    if user.role != "student":
        raise errors.ForbiddenError(errors.ONLY_STUDENTS)
    mood = (mood or "").strip().lower()
    if mood not in MOODS:
        raise errors.InvalidInputError(errors.INVALID_MOOD)

    entry = MoodLog(student_id=user.id, mood=mood)
    db.add(entry)
    await db.commit()
    logger.info("humor registrado: %s -> %s", user.username, mood)
    return entry


async def list_mood_logs(
    db: AsyncSession,
    user: User,
    student_ids: Optional[Iterable[uuid.UUID]] = None,
    limit: Optional[int] = None,
) -> list[MoodLog]:
    ids = await visible_student_ids(db, user, student_ids)
    if not ids:
        return []
    q = (
        select(MoodLog)
        .where(MoodLog.student_id.in_(ids))
        .order_by(MoodLog.created_at.desc())
        .limit(limit or config.MOOD_LOG_LIMIT)
    )
    return list((await db.execute(q)).scalars().all())


async def latest_moods(db: AsyncSession, student_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, MoodLog]:
    latest: dict[uuid.UUID, MoodLog] = {}
    ids = list(student_ids)
    if not ids:
        return latest
    q = select(MoodLog).where(MoodLog.student_id.in_(ids)).order_by(MoodLog.created_at.desc())
    for entry in (await db.execute(q)).scalars():
        latest.setdefault(entry.student_id, entry)
    return latest
