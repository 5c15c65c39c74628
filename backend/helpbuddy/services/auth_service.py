import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from helpbuddy import config, errors
from helpbuddy.db import get_db
from helpbuddy.models import User, UserSession, ROLES

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

# sem 0/O e 1/I para o código ser fácil de ditar
CONNECTION_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CONNECTION_CODE_LENGTH = 6
REGISTER_ATTEMPTS = 3


def normalize_username(username: Optional[str]) -> str:
    return (username or "").strip().lower()


def verify_password(plain_password, password_hash):
    return pwd_context.verify(plain_password, password_hash)

def hash_password(password):
    if not isinstance(password, (str, bytes)):
        raise TypeError("Password must be a string or bytes.")
    return pwd_context.hash(password)


def _as_utc(value: datetime) -> datetime:
    # sqlite devolve datetimes sem fuso
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def create_session_token(user_id: uuid.UUID, session_id: uuid.UUID, expires_at: datetime) -> str:
    to_encode = {
        "sub": str(user_id),
        "jti": str(session_id),
        "exp": expires_at,
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


async def generate_connection_code(db: AsyncSession) -> str:
    """Gera um código de conexão que ainda não está em uso."""
    while True:
        code = "".join(secrets.choice(CONNECTION_CODE_ALPHABET) for _ in range(CONNECTION_CODE_LENGTH))
        res = await db.execute(select(User.id).where(User.connection_code == code))
        if res.scalar_one_or_none() is None:
            return code


async def get_user_by_username(db: AsyncSession, username: str) -> Optional[User]:
    res = await db.execute(select(User).where(User.username == normalize_username(username)))
    return res.scalar_one_or_none()


async def open_session(db: AsyncSession, user: User) -> str:
    """Cria a linha em user_sessions e devolve o token assinado."""
    session_id = uuid.uuid4()
    expires_at = datetime.now(timezone.utc) + timedelta(minutes=config.SESSION_EXPIRE_MINUTES)
    token = create_session_token(user.id, session_id, expires_at)
    db.add(UserSession(id=session_id, user_id=user.id, session_token=token, expires_at=expires_at))
    await db.commit()
    return token


async def authenticate_user(db: AsyncSession, username: str, password: str) -> tuple[User, str]:
    user = await get_user_by_username(db, username)
    if user is None:
        raise errors.NotFoundError(errors.USER_NOT_FOUND)
    if not user.password_hash:
        raise errors.InvalidInputError(errors.NO_PASSWORD_SET)
    if not verify_password(password, user.password_hash):
        raise errors.SessionError(errors.INVALID_CREDENTIALS)

    user.last_login = datetime.now(timezone.utc)
    token = await open_session(db, user)
    await db.refresh(user)
    logger.info("login ok: %s (%s)", user.username, user.role)
    return user, token


async def register_user(
    db: AsyncSession,
    username: str,
    role: str,
    password: str,
    avatar_url: Optional[str] = None,
) -> tuple[User, str]:
    normalized = normalize_username(username)
    if not normalized:
        raise errors.InvalidInputError(errors.USERNAME_REQUIRED)
    if not password:
        raise errors.InvalidInputError(errors.PASSWORD_REQUIRED)
    if role not in ROLES:
        raise errors.InvalidInputError(errors.INVALID_ROLE)
    if await get_user_by_username(db, normalized):
        raise errors.ConflictError(errors.USERNAME_TAKEN)

    password_hash = hash_password(password)
    for attempt in range(1, REGISTER_ATTEMPTS + 1):
        user = User(
            username=normalized,
            role=role,
            password_hash=password_hash,
            avatar_url=avatar_url or None,
            connection_code=await generate_connection_code(db) if role == "student" else None,
            last_login=datetime.now(timezone.utc),
        )
        db.add(user)
        try:
            await db.flush()
            break
        except IntegrityError:
            await db.rollback()
            # cadastro concorrente com o mesmo nome
            if await get_user_by_username(db, normalized):
                raise errors.ConflictError(errors.USERNAME_TAKEN)
            # senão o código de conexão foi ocupado entre a checagem e o insert
            logger.warning("código de conexão em uso, nova tentativa (%d)", attempt)
    else:
        raise errors.ConflictError(errors.CONNECTION_CODE_UNAVAILABLE)

    token = await open_session(db, user)
    await db.refresh(user)
    logger.info("usuário criado: %s (%s)", user.username, user.role)
    return user, token


async def resolve_session(db: AsyncSession, token: Optional[str]) -> Optional[User]:
    """Token -> usuário. None para token ausente, inválido, expirado ou já removido."""
    if not token:
        return None
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError:
        return None
    if payload.get("sub") is None:
        return None

    q = (
        select(UserSession)
        .options(joinedload(UserSession.user))
        .where(UserSession.session_token == token)
    )
    session = (await db.execute(q)).scalar_one_or_none()
    if session is None:
        return None
    if _as_utc(session.expires_at) <= datetime.now(timezone.utc):
        return None
    return session.user


async def require_session(db: AsyncSession, token: Optional[str]) -> User:
    user = await resolve_session(db, token)
    if user is None:
        raise errors.SessionError()
    return user


async def end_session(db: AsyncSession, token: str) -> bool:
    res = await db.execute(delete(UserSession).where(UserSession.session_token == token))
    await db.commit()
    return res.rowcount > 0


async def update_avatar(db: AsyncSession, user: User, avatar_url: str) -> User:
    user.avatar_url = avatar_url
    await db.commit()
    await db.refresh(user)
    return user


async def get_current_user(token: str = Depends(oauth2_scheme), db: AsyncSession = Depends(get_db)):
    """
    Valida o token de sessão do cabeçalho Authorization e devolve o usuário.
    Toda rota de tabela recebe a identidade por aqui, nunca por estado global.
    """
    return await require_session(db, token)
