import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from helpbuddy.db import get_db
from helpbuddy.models import User
from helpbuddy.schemas import MoodLogCreate, MoodLogPublic
from helpbuddy.services.auth_service import get_current_user
from helpbuddy.services import mood_service

router = APIRouter(prefix="/mood_logs", tags=["mood_logs"])


@router.get("", response_model=List[MoodLogPublic])
async def get_mood_logs(
    student_id: Optional[List[uuid.UUID]] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    # ids fora do que o usuário pode ver são descartados no serviço
    return await mood_service.list_mood_logs(db, current_user, student_id, limit)


@router.post("", response_model=MoodLogPublic, status_code=status.HTTP_201_CREATED)
async def create_mood_log(
    req: MoodLogCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await mood_service.log_mood(db, current_user, req.mood)
