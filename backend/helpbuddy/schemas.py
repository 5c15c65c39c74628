from __future__ import annotations
from typing import Optional, List, Literal
from pydantic import BaseModel, Field
from datetime import datetime
from uuid import UUID

# --- usuários / sessão ---
class UserPublic(BaseModel):
    """
    Dados do usuário devolvidos ao cliente (sem hash de senha).
    É o `user_data` das RPCs de autenticação.
    """
    id: UUID
    username: str
    role: Literal["student", "parent", "educator"]
    avatar_url: Optional[str] = None
    connection_code: Optional[str] = None
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class AuthPayload(BaseModel):
    user_data: UserPublic
    session_token: str


class SessionPayload(BaseModel):
    user_data: UserPublic


class Token(BaseModel):
    """/auth/login (formulário OAuth2) - o access_token é o próprio token de sessão."""
    access_token: str
    token_type: str = "bearer"


class UserLookup(BaseModel):
    id: UUID
    username: str
    role: str

    class Config:
        from_attributes = True


class AvatarUpdate(BaseModel):
    avatar_url: str = Field(..., min_length=1)


class AvatarOptions(BaseModel):
    options: List[str]


# --- parâmetros das RPCs (mesmos nomes das funções do banco) ---
class AuthenticateUserReq(BaseModel):
    p_username: str = ""
    p_password: str = ""


class RegisterUserReq(BaseModel):
    # validação textual fica no serviço para devolver as mensagens em português
    p_username: str = ""
    p_role: str = "student"
    p_avatar_url: Optional[str] = None
    p_password: str = ""


class ValidateSessionReq(BaseModel):
    p_session_token: str = ""


class SessionTokenReq(BaseModel):
    session_token: str


class ConnectToStudentReq(SessionTokenReq):
    connection_code: str


class LogMoodReq(SessionTokenReq):
    mood_value: str


class ResolveHelpRequestReq(SessionTokenReq):
    help_request_id: str


# --- conexões ---
class ProfileSummary(BaseModel):
    username: str
    avatar_url: Optional[str] = None
    connection_code: Optional[str] = None

    class Config:
        from_attributes = True


class ConnectionRpcResult(BaseModel):
    """Formato plano devolvido por get_connections_rpc / connect_to_student_rpc."""
    id: UUID
    parent_educator_id: UUID
    student_id: UUID
    created_at: datetime
    student_username: str
    student_connection_code: Optional[str] = None


class ConnectionRow(BaseModel):
    """Formato da consulta direta em /connections (perfis embutidos)."""
    id: UUID
    parent_educator_id: UUID
    student_id: UUID
    created_at: datetime
    student_profile: Optional[ProfileSummary] = None
    parent_educator_profile: Optional[ProfileSummary] = None


class ConnectionCreate(BaseModel):
    student_id: UUID


# --- humor ---
class MoodLogPublic(BaseModel):
    id: UUID
    student_id: UUID
    mood: Literal["happy", "sad", "calm", "excited", "focused"]
    created_at: datetime

    class Config:
        from_attributes = True


class MoodLogCreate(BaseModel):
    mood: str


# --- pedidos de ajuda ---
class HelpRequestPublic(BaseModel):
    id: UUID
    student_id: UUID
    is_active: bool
    created_at: datetime
    resolved_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# --- dashboards ---
class StudentDashboard(BaseModel):
    user: UserPublic
    avatar_url: str
    connection_code: Optional[str] = None
    latest_mood: Optional[MoodLogPublic] = None
    recent_moods: List[MoodLogPublic] = []
    active_help_request: Optional[HelpRequestPublic] = None
    # o botão de pedir ajuda fica desabilitado enquanto houver pedido ativo
    can_request_help: bool = True
    connections_count: int = 0


class StudentOverview(BaseModel):
    student_id: UUID
    connection_id: UUID
    username: str
    avatar_url: str
    connection_code: Optional[str] = None
    status: Literal["ok", "needs_help"]
    latest_mood: Optional[MoodLogPublic] = None
    active_help_request_id: Optional[UUID] = None


class HelpAlert(BaseModel):
    help_request_id: UUID
    student_id: UUID
    student_username: str
    latest_mood: Optional[str] = None
    is_active: bool
    created_at: datetime
    resolved_at: Optional[datetime] = None


class GuardianDashboard(BaseModel):
    user: UserPublic
    role_label: str
    students: List[StudentOverview] = []
    active_alerts: List[HelpAlert] = []
    help_history: List[HelpAlert] = []


# --- push ---
class PushSubscriptionCreate(BaseModel):
    endpoint: str = Field(..., min_length=1)
    p256dh: str = Field(..., min_length=1)
    auth: str = Field(..., min_length=1)


class PushSubscriptionDelete(BaseModel):
    endpoint: str = Field(..., min_length=1)


class PushSubscriptionPublic(BaseModel):
    user_id: UUID
    endpoint: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PushSendReq(BaseModel):
    user_id: UUID
    title: str = Field(..., min_length=1)
    body: str = ""


class PushSendResult(BaseModel):
    delivered: int
