# helpbuddy/workers/notification_worker.py
import asyncio
import logging
import uuid
from typing import Any

from aiokafka import AIOKafkaConsumer  # type: ignore

from helpbuddy import config
from helpbuddy.db import SessionLocal
from helpbuddy.kafka import decode_json
from helpbuddy.services.push_service import notify_guardians_of_help_request

logger = logging.getLogger(__name__)


async def handle_event(payload: Any) -> int:
    """
    Processa um evento do feed de help_requests.
    Só pedidos novos e ativos disparam push para os responsáveis conectados.
    """
    if not isinstance(payload, dict):
        logger.warning("evento ignorado, payload não é objeto: %r", payload)
        return 0
    if payload.get("table") != "help_requests":
        return 0
    if payload.get("type") != "INSERT":
        return 0

    record = payload.get("record")
    if not isinstance(record, dict) or not record.get("is_active"):
        return 0
    try:
        student_id = uuid.UUID(str(record.get("student_id")))
    except ValueError:
        logger.warning("evento sem student_id válido: %s", payload)
        return 0

    async with SessionLocal() as db:
        delivered = await notify_guardians_of_help_request(db, student_id)
    logger.info("pedido %s: %d notificação(ões) enviada(s)", record.get("id"), delivered)
    return delivered


async def handle_message(msg) -> int:
    """Processa uma mensagem; erros vão para o log e o offset segue adiante."""
    logger.debug("mensagem offset=%s key=%s", msg.offset, msg.key)
    try:
        return await handle_event(msg.value)
    except Exception:
        logger.exception("falha ao processar mensagem offset=%s", msg.offset)
        return 0


async def main():
    config.configure_logging()
    if not config.kafka_enabled():
        raise RuntimeError("KAFKA_BOOTSTRAP must be set to run the notification worker.")

    logger.info(
        "notification_worker iniciado - bootstrap=%s, topic=%s, group_id=%s",
        config.KAFKA_BOOTSTRAP, config.KAFKA_TOPIC_HELP_REQUESTS, config.KAFKA_GROUP_NOTIFICATIONS,
    )
    consumer = AIOKafkaConsumer(
        config.KAFKA_TOPIC_HELP_REQUESTS,
        bootstrap_servers=config.KAFKA_BOOTSTRAP,
        group_id=config.KAFKA_GROUP_NOTIFICATIONS,
        value_deserializer=decode_json,
        key_deserializer=lambda v: v.decode() if v is not None else None,
        enable_auto_commit=False,
        auto_offset_reset="earliest",
    )
    await consumer.start()
    try:
        while True:
            batch = await consumer.getmany(timeout_ms=1000)
            for tp, messages in batch.items():
                for msg in messages:
                    await handle_message(msg)
                    await consumer.commit()
    finally:
        await consumer.stop()


if __name__ == "__main__":
    asyncio.run(main())
