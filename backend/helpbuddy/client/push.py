import logging
from typing import Optional

from helpbuddy.client.api import BackendError, HelpBuddyApi
from helpbuddy.client.storage import TokenStore

logger = logging.getLogger(__name__)


class PushClient:
    def __init__(self, api: HelpBuddyApi, store: TokenStore):
        self.api = api
        self.store = store
        self.is_subscribed = False

    async def subscribe(self, endpoint: str, p256dh: str, auth: str) -> bool:
        token = self.store.get()
        if not token:
            return False
        try:
            await self.api.post(
                "/push/subscriptions",
                token=token,
                json={"endpoint": endpoint, "p256dh": p256dh, "auth": auth},
            )
        except BackendError as e:
            logger.error("erro ao salvar inscrição: %s", e)
            return False
        self.is_subscribed = True
        return True

    async def unsubscribe(self, endpoint: str) -> None:
        token = self.store.get()
        try:
            if token:
                await self.api.delete("/push/subscriptions", token=token, json={"endpoint": endpoint})
        except BackendError as e:
            logger.error("erro ao cancelar inscrição: %s", e)
        self.is_subscribed = False

    async def send_notification(self, user_id: str, title: str, body: str) -> Optional[int]:
        token = self.store.get()
        if not token:
            return None
        try:
            result = await self.api.post(
                "/push/send", token=token, json={"user_id": str(user_id), "title": title, "body": body}
            )
        except BackendError as e:
            logger.error("erro ao enviar notificação: %s", e)
            return None
        return result["delivered"]
