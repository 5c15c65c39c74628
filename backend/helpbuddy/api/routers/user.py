from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from helpbuddy import errors
from helpbuddy.db import get_db
from helpbuddy.models import User
from helpbuddy.schemas import AvatarOptions, AvatarUpdate, UserLookup, UserPublic
from helpbuddy.services.auth_service import get_current_user, update_avatar
from helpbuddy.services.avatar_service import avatar_options

router = APIRouter(prefix="/user", tags=["user"])


# [1] busca por código de conexão (consulta direta usada no fallback)
@router.get("/lookup", response_model=UserLookup)
async def lookup_user(
    connection_code: str = Query(..., min_length=1),
    role: Literal["student", "parent", "educator"] = "student",
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    q = select(User).where(
        User.connection_code == connection_code.strip().upper(),
        User.role == role,
    )
    user = (await db.execute(q)).scalar_one_or_none()
    if user is None:
        raise errors.NotFoundError(errors.INVALID_CODE)
    return user


# [2] avatar
@router.put("/avatar", response_model=UserPublic)
async def put_avatar(
    req: AvatarUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    avatar_url = req.avatar_url.strip()
    if not avatar_url:
        raise errors.InvalidInputError("URL do avatar é obrigatória")
    return await update_avatar(db, current_user, avatar_url)


@router.get("/avatar/options", response_model=AvatarOptions)
async def get_avatar_options(size: int = Query(120, ge=32, le=512)):
    """Uma URL DiceBear por estilo, com sementes novas a cada chamada."""
    return AvatarOptions(options=avatar_options(size))
