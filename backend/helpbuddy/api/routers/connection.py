import uuid
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from helpbuddy.db import get_db
from helpbuddy.models import User
from helpbuddy.schemas import ConnectionCreate, ConnectionRow
from helpbuddy.services.auth_service import get_current_user
from helpbuddy.services import connection_service

router = APIRouter(prefix="/connections", tags=["connections"])


@router.get("", response_model=List[ConnectionRow])
async def get_my_connections(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Conexões do usuário com os perfis embutidos (student_profile e
    parent_educator_profile), mais recentes primeiro.
    """
    conns = await connection_service.list_connections(db, current_user)
    return [connection_service.to_row(c) for c in conns]


@router.post("", response_model=ConnectionRow, status_code=status.HTTP_201_CREATED)
async def create_connection(
    req: ConnectionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    conn = await connection_service.create_connection(db, current_user, req.student_id)
    return connection_service.to_row(conn)


@router.delete("/{connection_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_connection(
    connection_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    await connection_service.remove_connection(db, current_user, connection_id)
    return None
