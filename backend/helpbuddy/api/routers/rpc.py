from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from helpbuddy.db import get_db
from helpbuddy.schemas import (
    AuthenticateUserReq, RegisterUserReq, ValidateSessionReq, SessionTokenReq,
    ConnectToStudentReq, LogMoodReq, ResolveHelpRequestReq,
    AuthPayload, SessionPayload, UserPublic,
    ConnectionRpcResult, MoodLogPublic, HelpRequestPublic,
)
from helpbuddy.services import auth_service, connection_service, mood_service, help_service

# Funções remotas chamadas por nome: POST /rpc/<nome> com os parâmetros no corpo.
# Assim como as funções do banco, devolvem sempre uma lista de linhas.
router = APIRouter(prefix="/rpc", tags=["rpc"])


# [1] autenticação
@router.post("/authenticate_user", response_model=List[AuthPayload])
async def authenticate_user(req: AuthenticateUserReq, db: AsyncSession = Depends(get_db)):
    user, token = await auth_service.authenticate_user(db, req.p_username, req.p_password)
    return [AuthPayload(user_data=UserPublic.model_validate(user), session_token=token)]


@router.post("/register_user", response_model=List[AuthPayload])
async def register_user(req: RegisterUserReq, db: AsyncSession = Depends(get_db)):
    user, token = await auth_service.register_user(
        db, req.p_username, req.p_role, req.p_password, req.p_avatar_url
    )
    return [AuthPayload(user_data=UserPublic.model_validate(user), session_token=token)]


@router.post("/validate_session", response_model=List[SessionPayload])
async def validate_session(req: ValidateSessionReq, db: AsyncSession = Depends(get_db)):
    """Token desconhecido, expirado ou ilegível devolve lista vazia, não erro."""
    user = await auth_service.resolve_session(db, req.p_session_token)
    if user is None:
        return []
    return [SessionPayload(user_data=UserPublic.model_validate(user))]


@router.post("/generate_connection_code", response_model=str)
async def generate_connection_code(db: AsyncSession = Depends(get_db)):
    return await auth_service.generate_connection_code(db)


# [2] leitura
@router.post("/get_connections_rpc", response_model=List[ConnectionRpcResult])
async def get_connections_rpc(req: SessionTokenReq, db: AsyncSession = Depends(get_db)):
    user = await auth_service.require_session(db, req.session_token)
    conns = await connection_service.list_connections(db, user)
    return [connection_service.to_rpc_result(c) for c in conns]


@router.post("/get_mood_logs_rpc", response_model=List[MoodLogPublic])
async def get_mood_logs_rpc(req: SessionTokenReq, db: AsyncSession = Depends(get_db)):
    user = await auth_service.require_session(db, req.session_token)
    return await mood_service.list_mood_logs(db, user)


@router.post("/get_help_requests_rpc", response_model=List[HelpRequestPublic])
async def get_help_requests_rpc(req: SessionTokenReq, db: AsyncSession = Depends(get_db)):
    user = await auth_service.require_session(db, req.session_token)
    return await help_service.list_help_requests(db, user)


# [3] mutações
@router.post("/connect_to_student_rpc", response_model=List[ConnectionRpcResult])
async def connect_to_student_rpc(req: ConnectToStudentReq, db: AsyncSession = Depends(get_db)):
    user = await auth_service.require_session(db, req.session_token)
    conn = await connection_service.connect_to_student(db, user, req.connection_code)
    return [connection_service.to_rpc_result(conn)]


@router.post("/log_mood_rpc", response_model=List[MoodLogPublic])
async def log_mood_rpc(req: LogMoodReq, db: AsyncSession = Depends(get_db)):
    user = await auth_service.require_session(db, req.session_token)
    return [await mood_service.log_mood(db, user, req.mood_value)]


@router.post("/create_help_request_rpc", response_model=List[HelpRequestPublic])
async def create_help_request_rpc(req: SessionTokenReq, db: AsyncSession = Depends(get_db)):
    user = await auth_service.require_session(db, req.session_token)
    return [await help_service.create_help_request(db, user)]


@router.post("/resolve_help_request_rpc", response_model=List[HelpRequestPublic])
async def resolve_help_request_rpc(req: ResolveHelpRequestReq, db: AsyncSession = Depends(get_db)):
    user = await auth_service.require_session(db, req.session_token)
    return [await help_service.resolve_help_request(db, user, req.help_request_id)]
