# helpbuddy/kafka.py
import json
import logging

from aiokafka import AIOKafkaProducer

from helpbuddy import config

logger = logging.getLogger(__name__)

producer: AIOKafkaProducer | None = None

CHANGE_TYPES = ("INSERT", "UPDATE", "DELETE")


def decode_json(raw: bytes | None):
    """Desserializa o valor de uma mensagem. Bytes inválidos viram None."""
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("mensagem ignorada, JSON inválido: %r", raw[:200])
        return None


async def start_kafka():
    global producer
    if not config.kafka_enabled():
        logger.info("KAFKA_BOOTSTRAP não definido, feed de mudanças desligado")
        return
    producer = AIOKafkaProducer(
        bootstrap_servers=config.KAFKA_BOOTSTRAP,
        value_serializer=lambda v: json.dumps(v).encode(),
        key_serializer=lambda v: str(v).encode(),
        linger_ms=5,
        acks="all",
        enable_idempotence=True,
    )
    await producer.start()

async def stop_kafka():
    global producer
    if producer:
        await producer.stop()
        producer = None


def help_request_record(help_request) -> dict:
    return {
        "id": str(help_request.id),
        "student_id": str(help_request.student_id),
        "is_active": help_request.is_active,
        "created_at": help_request.created_at.isoformat() if help_request.created_at else None,
        "resolved_at": help_request.resolved_at.isoformat() if help_request.resolved_at else None,
    }


async def publish_help_request_change(event_type: str, help_request) -> bool:
    """
    Publica a mudança em help_requests no tópico de realtime.
    A linha já foi gravada; falha aqui só é registrada no log.
    """
    if producer is None:
        return False
    if event_type not in CHANGE_TYPES:
        raise ValueError(f"unknown change type: {event_type}")

    payload = {
        "table": "help_requests",
        "type": event_type,
        "record": help_request_record(help_request),
    }
    try:
        await producer.send_and_wait(
            config.KAFKA_TOPIC_HELP_REQUESTS, payload, key=help_request.student_id
        )
    except Exception:
        logger.exception("falha ao publicar %s de help_request %s", event_type, help_request.id)
        return False
    return True
