from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from helpbuddy import errors
from helpbuddy.db import get_db
from helpbuddy.models import User
from helpbuddy.schemas import (
    StudentDashboard, GuardianDashboard, StudentOverview, HelpAlert,
    UserPublic, MoodLogPublic, HelpRequestPublic,
)
from helpbuddy.services.auth_service import get_current_user
from helpbuddy.services.avatar_service import default_avatar_url, role_label
from helpbuddy.services import connection_service, mood_service, help_service

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


# [1] painel do aluno
@router.get("/student", response_model=StudentDashboard)
async def student_dashboard(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if current_user.role != "student":
        raise errors.ForbiddenError(errors.ONLY_STUDENTS)

    recent = await mood_service.list_mood_logs(db, current_user, [current_user.id])
    active = await help_service.active_help_request(db, current_user.id)
    conns = await connection_service.list_connections(db, current_user)

    return StudentDashboard(
        user=UserPublic.model_validate(current_user),
        avatar_url=current_user.avatar_url or default_avatar_url(current_user.username),
        connection_code=current_user.connection_code,
        latest_mood=MoodLogPublic.model_validate(recent[0]) if recent else None,
        recent_moods=[MoodLogPublic.model_validate(m) for m in recent],
        active_help_request=HelpRequestPublic.model_validate(active) if active else None,
        can_request_help=active is None,
        connections_count=len(conns),
    )


# [2] painel do responsável / educador
@router.get("/educator", response_model=GuardianDashboard)
async def guardian_dashboard(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Alunos conectados com o último humor e o status ("needs_help" enquanto
    houver pedido ativo), alertas ativos e o histórico de pedidos resolvidos.
    """
    if not connection_service.is_guardian(current_user):
        raise errors.ForbiddenError(errors.ONLY_GUARDIANS_DASHBOARD)

    conns = await connection_service.list_connections(db, current_user)
    student_ids = [c.student_id for c in conns]
    latest = await mood_service.latest_moods(db, student_ids)
    help_requests = await help_service.list_help_requests(db, current_user, student_ids) if student_ids else []

    active_by_student = {}
    for hr in help_requests:
        if hr.is_active:
            active_by_student.setdefault(hr.student_id, hr)

    students = []
    usernames = {}
    for conn in conns:
        student = conn.student
        usernames[conn.student_id] = student.username
        mood = latest.get(conn.student_id)
        active = active_by_student.get(conn.student_id)
        students.append(StudentOverview(
            student_id=conn.student_id,
            connection_id=conn.id,
            username=student.username,
            avatar_url=student.avatar_url or default_avatar_url(student.username),
            connection_code=student.connection_code,
            status="needs_help" if active else "ok",
            latest_mood=MoodLogPublic.model_validate(mood) if mood else None,
            active_help_request_id=active.id if active else None,
        ))

    active_alerts, history = [], []
    for hr in help_requests:
        mood = latest.get(hr.student_id)
        alert = HelpAlert(
            help_request_id=hr.id,
            student_id=hr.student_id,
            student_username=usernames.get(hr.student_id, ""),
            latest_mood=mood_service.MOOD_LABELS.get(mood.mood) if mood else None,
            is_active=hr.is_active,
            created_at=hr.created_at,
            resolved_at=hr.resolved_at,
        )
        (active_alerts if hr.is_active else history).append(alert)

    return GuardianDashboard(
        user=UserPublic.model_validate(current_user),
        role_label=role_label(current_user.role),
        students=students,
        active_alerts=active_alerts,
        help_history=history,
    )
