from __future__ import annotations
from typing import Optional

import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    String, Text, DateTime, CheckConstraint, ForeignKey, Index, Boolean,
    UniqueConstraint, Uuid,
)
from sqlalchemy.sql.expression import text

from helpbuddy.db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


ROLES = ("student", "parent", "educator")
GUARDIAN_ROLES = ("parent", "educator")

MOODS = ("happy", "sad", "calm", "excited", "focused")


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "role in ('student','parent','educator')",
            name="ck_users_role",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # sempre normalizado (trim + lower) antes de gravar
    username: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    password_hash: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    avatar_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # só alunos têm código de conexão
    connection_code: Mapped[Optional[str]] = mapped_column(String(16), unique=True, index=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    sessions: Mapped[list["UserSession"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )
    guardian_connections: Mapped[list["Connection"]] = relationship(
        "Connection", foreign_keys="Connection.parent_educator_id", back_populates="parent_educator"
    )
    student_connections: Mapped[list["Connection"]] = relationship(
        "Connection", foreign_keys="Connection.student_id", back_populates="student"
    )


class UserSession(Base):
    __tablename__ = "user_sessions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    session_token: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    user: Mapped["User"] = relationship(back_populates="sessions")


class Connection(Base):
    """
    Aresta dirigida responsável/educador -> aluno.
    Criada quando o responsável informa o código de conexão do aluno.
    """
    __tablename__ = "connections"
    __table_args__ = (
        UniqueConstraint("parent_educator_id", "student_id", name="uq_connections_pair"),
        Index("idx_connections_parent_educator", "parent_educator_id"),
        Index("idx_connections_student", "student_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    parent_educator_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    parent_educator: Mapped["User"] = relationship(
        "User", foreign_keys=[parent_educator_id], back_populates="guardian_connections"
    )
    student: Mapped["User"] = relationship(
        "User", foreign_keys=[student_id], back_populates="student_connections"
    )


class MoodLog(Base):
    __tablename__ = "mood_logs"
    __table_args__ = (
        CheckConstraint(
            "mood in ('happy','sad','calm','excited','focused')",
            name="ck_mood_logs_mood",
        ),
        Index("idx_mood_logs_student_time", "student_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    mood: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class HelpRequest(Base):
    __tablename__ = "help_requests"
    __table_args__ = (
        Index("idx_help_requests_student_time", "student_id", "created_at"),
        # no máximo um pedido ativo por aluno, garantido pelo banco
        Index(
            "uq_help_requests_one_active",
            "student_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    student: Mapped["User"] = relationship("User")


class PushSubscription(Base):
    __tablename__ = "push_subscriptions"

    # upsert por usuário: uma inscrição por user_id
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    endpoint: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    p256dh: Mapped[str] = mapped_column(Text, nullable=False)
    auth: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
