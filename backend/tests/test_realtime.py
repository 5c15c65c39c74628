import asyncio
from types import SimpleNamespace

from helpbuddy.client.realtime import HelpRequestFeed


class FakeData:
    def __init__(self):
        self.fetches = 0

    async def fetch_help_requests(self):
        self.fetches += 1


class FakeConsumer:
    def __init__(self, payloads):
        self.payloads = payloads
        self.started = False
        self.stopped = False

    async def start(self):
        self.started = True

    async def stop(self):
        self.stopped = True

    def __aiter__(self):
        return self._messages()

    async def _messages(self):
        for payload in self.payloads:
            yield SimpleNamespace(value=payload)
        # fica aberto como um consumidor real
        await asyncio.Event().wait()


def test_handle_refetches_on_every_change_type():
    data = FakeData()
    feed = HelpRequestFeed(data, consumer_factory=lambda: None)

    async def scenario():
        results = []
        for change in ("INSERT", "UPDATE", "DELETE"):
            results.append(await feed.handle({"table": "help_requests", "type": change, "record": {}}))
        results.append(await feed.handle({"table": "mood_logs", "type": "INSERT"}))
        results.append(await feed.handle({"table": "help_requests", "type": "TRUNCATE"}))
        return results

    assert asyncio.run(scenario()) == [True, True, True, False, False]
    assert data.fetches == 3


def test_feed_consumes_until_stopped():
    data = FakeData()
    consumer = FakeConsumer([
        {"table": "help_requests", "type": "INSERT", "record": {}},
        {"table": "help_requests", "type": "UPDATE", "record": {}},
    ])

    async def scenario():
        async with HelpRequestFeed(data, consumer_factory=lambda: consumer) as feed:
            for _ in range(50):
                if data.fetches == 2:
                    break
                await asyncio.sleep(0)
            return feed

    feed = asyncio.run(scenario())

    assert consumer.started and consumer.stopped
    assert data.fetches == 2
    assert feed.consumer is None


def test_malformed_messages_do_not_stop_the_feed():
    data = FakeData()
    consumer = FakeConsumer([
        None,
        ["help_requests"],
        {"table": "help_requests", "type": "INSERT", "record": {}},
    ])

    async def scenario():
        async with HelpRequestFeed(data, consumer_factory=lambda: consumer):
            for _ in range(50):
                if data.fetches == 1:
                    break
                await asyncio.sleep(0)

    asyncio.run(scenario())

    assert consumer.stopped
    assert data.fetches == 1


def test_fetch_failure_is_logged_and_feed_continues():
    class FlakyData(FakeData):
        async def fetch_help_requests(self):
            self.fetches += 1
            if self.fetches == 1:
                raise RuntimeError("backend fora do ar")

    data = FlakyData()
    consumer = FakeConsumer([
        {"table": "help_requests", "type": "INSERT", "record": {}},
        {"table": "help_requests", "type": "UPDATE", "record": {}},
    ])

    async def scenario():
        async with HelpRequestFeed(data, consumer_factory=lambda: consumer):
            for _ in range(50):
                if data.fetches == 2:
                    break
                await asyncio.sleep(0)

    asyncio.run(scenario())

    assert data.fetches == 2
