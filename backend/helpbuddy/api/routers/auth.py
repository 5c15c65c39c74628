import logging

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from helpbuddy.db import get_db
from helpbuddy.models import User
from helpbuddy.schemas import Token, UserPublic
from helpbuddy.services.auth_service import (
    authenticate_user, end_session, get_current_user, oauth2_scheme,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=Token)
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db)
):
    # mesmo fluxo do RPC authenticate_user; o access_token é o token de sessão
    _, token = await authenticate_user(db, form_data.username, form_data.password)
    return Token(access_token=token, token_type="bearer")


@router.get("/me", response_model=UserPublic)
async def get_my_info(current_user: User = Depends(get_current_user)):
    return current_user


@router.delete("/session", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
):
    """
    Remove a linha de user_sessions do token enviado.
    Token já removido também responde 204.
    """
    if not await end_session(db, token):
        logger.info("logout de sessão inexistente")
    return None
