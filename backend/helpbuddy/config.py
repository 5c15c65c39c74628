# backend/helpbuddy/config.py
import logging
import os

from dotenv import load_dotenv

load_dotenv(dotenv_path=os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), ".env"))


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


APP_ENV = os.getenv("APP_ENV", "development")

# local/testes usam sqlite; produção usa postgresql+asyncpg://...
ASYNC_DB_URL = os.getenv("ASYNC_DATABASE_URL", "sqlite+aiosqlite:///./helpbuddy.db")
CREATE_TABLES_ON_STARTUP = _get_bool(os.getenv("CREATE_TABLES_ON_STARTUP"), default=APP_ENV != "production")

SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
SESSION_EXPIRE_MINUTES = int(os.getenv("SESSION_EXPIRE_MINUTES", str(60 * 24 * 7)))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:8080").split(",")
    if origin.strip()
]

# Kafka fica desligado quando KAFKA_BOOTSTRAP não está definido
KAFKA_BOOTSTRAP = os.getenv("KAFKA_BOOTSTRAP", "")
KAFKA_TOPIC_HELP_REQUESTS = os.getenv("KAFKA_TOPIC_HELP_REQUESTS", "helpbuddy.help_requests.changes")
KAFKA_GROUP_NOTIFICATIONS = os.getenv("KAFKA_GROUP_NOTIFICATIONS", "helpbuddy-notifications")

PUSH_GATEWAY_URL = os.getenv("PUSH_GATEWAY_URL", "")
PUSH_GATEWAY_TOKEN = os.getenv("PUSH_GATEWAY_TOKEN", "")

MOOD_LOG_LIMIT = int(os.getenv("MOOD_LOG_LIMIT", "10"))

# cliente
HELPBUDDY_API_URL = os.getenv("HELPBUDDY_API_URL", "http://localhost:8000")
HELPBUDDY_TOKEN_FILE = os.getenv(
    "HELPBUDDY_TOKEN_FILE",
    os.path.join(os.path.expanduser("~"), ".helpbuddy", "session_token"),
)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def kafka_enabled() -> bool:
    return bool(KAFKA_BOOTSTRAP)


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and SECRET_KEY == "change-me":
        raise RuntimeError("SECRET_KEY must be set in production.")
