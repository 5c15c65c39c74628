import asyncio
import uuid
from datetime import datetime, timezone

import pytest

from helpbuddy import config, kafka
from helpbuddy.models import HelpRequest


class FakeProducer:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    async def send_and_wait(self, topic, value, key=None):
        if self.fail:
            raise RuntimeError("broker down")
        self.sent.append((topic, value, key))


def _help_request():
    return HelpRequest(
        id=uuid.uuid4(),
        student_id=uuid.uuid4(),
        is_active=True,
        created_at=datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc),
    )


def test_publish_is_noop_without_producer(monkeypatch):
    monkeypatch.setattr(kafka, "producer", None)

    assert asyncio.run(kafka.publish_help_request_change("INSERT", _help_request())) is False


def test_publish_change_payload(monkeypatch):
    fake = FakeProducer()
    monkeypatch.setattr(kafka, "producer", fake)
    hr = _help_request()

    assert asyncio.run(kafka.publish_help_request_change("INSERT", hr)) is True

    topic, value, key = fake.sent[0]
    assert topic == config.KAFKA_TOPIC_HELP_REQUESTS
    assert key == hr.student_id
    assert value == {
        "table": "help_requests",
        "type": "INSERT",
        "record": {
            "id": str(hr.id),
            "student_id": str(hr.student_id),
            "is_active": True,
            "created_at": "2026-10-01T12:00:00+00:00",
            "resolved_at": None,
        },
    }


def test_publish_failure_is_logged(monkeypatch):
    monkeypatch.setattr(kafka, "producer", FakeProducer(fail=True))

    assert asyncio.run(kafka.publish_help_request_change("UPDATE", _help_request())) is False


def test_unknown_change_type(monkeypatch):
    monkeypatch.setattr(kafka, "producer", FakeProducer())

    with pytest.raises(ValueError):
        asyncio.run(kafka.publish_help_request_change("UPSERT", _help_request()))


def test_start_kafka_disabled_without_bootstrap(monkeypatch):
    monkeypatch.setattr(config, "KAFKA_BOOTSTRAP", "")
    monkeypatch.setattr(kafka, "producer", None)

    asyncio.run(kafka.start_kafka())
    asyncio.run(kafka.stop_kafka())

    assert kafka.producer is None
