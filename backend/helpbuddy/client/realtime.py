import asyncio
import contextlib
import logging
from typing import Any, Callable, Optional

from aiokafka import AIOKafkaConsumer  # type: ignore

from helpbuddy import config
from helpbuddy.client.data import HelpBuddyData
from helpbuddy.kafka import CHANGE_TYPES, decode_json

logger = logging.getLogger(__name__)


def default_consumer() -> AIOKafkaConsumer:
    # sem group_id: cada cliente recebe todas as mudanças
    return AIOKafkaConsumer(
        config.KAFKA_TOPIC_HELP_REQUESTS,
        bootstrap_servers=config.KAFKA_BOOTSTRAP,
        value_deserializer=decode_json,
        auto_offset_reset="latest",
    )


class HelpRequestFeed:
    """Assina as mudanças em help_requests e recarrega a lista a cada evento."""

    def __init__(
        self,
        data: HelpBuddyData,
        consumer_factory: Optional[Callable[[], Any]] = None,
    ):
        self.data = data
        self.consumer_factory = consumer_factory or default_consumer
        self.consumer = None
        self._task: Optional[asyncio.Task] = None

    async def handle(self, payload: Any) -> bool:
        if not isinstance(payload, dict):
            return False
        if payload.get("table") != "help_requests":
            return False
        if payload.get("type") not in CHANGE_TYPES:
            return False
        logger.debug("mudança em help_requests: %s", payload.get("type"))
        await self.data.fetch_help_requests()
        return True

    async def start(self) -> None:
        self.consumer = self.consumer_factory()
        await self.consumer.start()
        self._task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        async for msg in self.consumer:
            try:
                await self.handle(msg.value)
            except Exception:
                # uma mensagem ruim não derruba o feed
                logger.exception("falha ao processar mudança em help_requests")

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        if self.consumer is not None:
            await self.consumer.stop()
            self.consumer = None

    async def __aenter__(self) -> "HelpRequestFeed":
        await self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.stop()
