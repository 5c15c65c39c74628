# /backend/helpbuddy/main.py

from __future__ import annotations
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from helpbuddy import config
from helpbuddy.db import get_db, create_all
from helpbuddy.models import User
from helpbuddy.api.routers import rpc, auth, user, connection, mood, help_request, dashboard, push
from helpbuddy.kafka import start_kafka, stop_kafka

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # início do app
    config.configure_logging()
    config.validate_runtime_config()
    if config.CREATE_TABLES_ON_STARTUP:
        await create_all()
    await start_kafka()
    logger.info("Help Buddy API pronta (env=%s)", config.APP_ENV)
    try:
        yield
    finally:
        # encerramento
        await stop_kafka()

app = FastAPI(
    title="Help Buddy API",
    lifespan=lifespan,
)

# CORS antes das rotas
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(rpc.router)
app.include_router(auth.router)
app.include_router(user.router)
app.include_router(connection.router)
app.include_router(mood.router)
app.include_router(help_request.router)
app.include_router(dashboard.router)
app.include_router(push.router)


@app.get("/health")
async def health():
    return {"ok": True}

@app.get("/db-health")
async def db_health(db: AsyncSession = Depends(get_db)):
    # busca um id qualquer de users
    result = await db.execute(select(User.id).limit(1))
    row = result.scalar_one_or_none()
    return {"db": "ok", "has_users": row is not None}
