import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from helpbuddy import errors
from helpbuddy.db import get_db
from helpbuddy.models import User
from helpbuddy.schemas import HelpRequestPublic
from helpbuddy.services.auth_service import get_current_user
from helpbuddy.services import help_service

router = APIRouter(prefix="/help_requests", tags=["help_requests"])


@router.get("", response_model=List[HelpRequestPublic])
async def get_help_requests(
    student_id: Optional[List[uuid.UUID]] = Query(None),
    is_active: Optional[bool] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await help_service.list_help_requests(db, current_user, student_id, is_active)


@router.post("", response_model=HelpRequestPublic, status_code=status.HTTP_201_CREATED)
async def create_help_request(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await help_service.create_help_request(db, current_user)


@router.post("/{help_request_id}/resolve", response_model=List[HelpRequestPublic])
async def resolve_help_request(
    help_request_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Versão direta do UPDATE ... WHERE is_active: devolve as linhas afetadas.
    Lista vazia quando o pedido não existe ou já foi resolvido.
    """
    try:
        resolved = await help_service.resolve_help_request(db, current_user, help_request_id)
    except errors.NotFoundError:
        return []
    return [resolved]
